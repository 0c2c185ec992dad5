# app/services/notification_client.py

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.core.config import settings


class NotificationType:
    SUBMISSION_RECEIVED = "SUBMISSION_RECEIVED"
    SUBMISSION_VALIDATED = "SUBMISSION_VALIDATED"
    SUBMISSION_REJECTED = "SUBMISSION_REJECTED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class NotificationClient:
    """
    Fire-and-forget sink. `notify` never raises: delivery problems are logged
    and the triggering operation carries on.
    """

    def __init__(self, base_url: Optional[str], timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.transport = transport

    async def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if not self.base_url:
            logger.debug(f"Notification service not configured. Skipping '{type}' for {user_id}.")
            return False

        payload = {"user_id": user_id, "type": type, "title": title, "message": message}
        if data is not None:
            payload["data"] = data

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/api/notifications", json=payload)
                response.raise_for_status()
        except Exception as e:
            logger.warning(f"Notification '{type}' to {user_id} failed: {e}")
            return False

        logger.info(f"Notification '{type}' sent to {user_id}")
        return True

    # ---------------------------------------------------------
    # Workflow notices
    # ---------------------------------------------------------
    async def submission_received(self, user_id: str, submission_id: int, title: str) -> bool:
        return await self.notify(
            user_id,
            NotificationType.SUBMISSION_RECEIVED,
            "Submission received",
            f'Your submission "{title}" was received and is awaiting moderation.',
            {"submission_id": submission_id, "submission_title": title},
        )

    async def submission_validated(self, user_id: str, submission_id: int, title: str, publication_id: int) -> bool:
        return await self.notify(
            user_id,
            NotificationType.SUBMISSION_VALIDATED,
            "Submission approved",
            f'Your submission "{title}" was approved and will be published shortly.',
            {"submission_id": submission_id, "submission_title": title, "publication_id": publication_id},
        )

    async def submission_rejected(self, user_id: str, submission_id: int, title: str, reason: Optional[str]) -> bool:
        message = f'Your submission "{title}" was rejected.'
        if reason:
            message += f" Reason: {reason}"
        return await self.notify(
            user_id,
            NotificationType.SUBMISSION_REJECTED,
            "Submission rejected",
            message,
            {"submission_id": submission_id, "submission_title": title, "reason": reason},
        )

    async def revision_requested(self, user_id: str, submission_id: int, title: str, feedback: Optional[str]) -> bool:
        return await self.notify(
            user_id,
            NotificationType.REVISION_REQUESTED,
            "Revision requested",
            f'Revisions were requested for your submission "{title}".',
            {"submission_id": submission_id, "submission_title": title, "feedback": feedback},
        )


_client: Optional[NotificationClient] = None


def get_notification_client() -> NotificationClient:
    global _client
    if _client is None:
        _client = NotificationClient(settings.NOTIFICATION_SERVICE_URL, settings.NOTIFICATION_SERVICE_TIMEOUT)
    return _client
