# app/services/publication_client.py

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.core.config import settings
from app.core.exceptions import PublicationServiceError
from app.models.submission import Submission

PUBLICATION_PATH = "/api/publications/from-submission"


def build_publication_payload(submission: Submission, file_url: Optional[str] = None) -> Dict[str, Any]:
    """Metadata handed to the content service; carries the source id for provenance."""
    return {
        "title": submission.title,
        "abstract": submission.abstract,
        "main_author": submission.main_author,
        "author_email": submission.author_email,
        "co_authors": list(submission.co_authors or []),
        "keywords": list(submission.keywords or []),
        "research_domain": submission.research_domain,
        "file_url": file_url,
        "file_key": submission.file_key,
        "source_submission_id": submission.id,
    }


class PublicationClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def create_publication_from_submission(self, payload: Dict[str, Any]) -> int:
        """
        Ask the content service to publish a validated submission.

        Returns the new publication id. Any transport error, non-2xx status
        or unreadable body raises PublicationServiceError; the caller must not
        advance the submission in that case.

        The request carries `Idempotency-Key: submission-<id>`, but nothing
        here assumes the content service honours it.
        """
        submission_id = payload.get("source_submission_id")
        headers = {"Idempotency-Key": f"submission-{submission_id}"}
        url = f"{self.base_url}{PUBLICATION_PATH}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"Content service refused submission {submission_id}: "
                    f"{e.response.status_code} {e.response.text[:200]}"
                )
                raise PublicationServiceError(
                    "Content service rejected the publication request",
                    details={"status_code": e.response.status_code},
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Content service unreachable for submission {submission_id}: {e}")
                raise PublicationServiceError("Content service is unreachable") from e

        publication_id = _extract_id(response)
        if publication_id is None:
            logger.error(f"Content service returned no publication id for submission {submission_id}")
            raise PublicationServiceError("Content service returned an invalid response")

        logger.info(f"Publication {publication_id} created for submission {submission_id}")
        return publication_id


def _extract_id(response: httpx.Response) -> Optional[int]:
    # Accepts a bare number or {"id": ...} / {"publication_id": ...}
    try:
        body = response.json()
    except ValueError:
        body = response.text.strip()

    if isinstance(body, dict):
        body = body.get("publication_id", body.get("id"))
    if isinstance(body, bool):
        return None
    try:
        return int(body)
    except (TypeError, ValueError):
        return None


_client: Optional[PublicationClient] = None


def get_publication_client() -> PublicationClient:
    global _client
    if _client is None:
        _client = PublicationClient(settings.CONTENT_SERVICE_URL, settings.CONTENT_SERVICE_TIMEOUT)
    return _client
