# app/core/rate_limiter.py

from slowapi import Limiter
from slowapi.util import get_remote_address
from loguru import logger

from app.core.config import settings


# ----------------------------------------------------------------
# CLIENT IP (behind the gateway / load balancer)
# ----------------------------------------------------------------
def get_real_ip(request):
    """
    Client IP as seen by the edge proxy.
    Leftmost X-Forwarded-For entry, then X-Real-IP, then the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


# ----------------------------------------------------------------
# STORAGE
# Managed Redis usually requires TLS ('rediss://') outside dev.
# ----------------------------------------------------------------
def _storage_uri():
    uri = settings.REDIS_URL
    if uri and uri.startswith("redis://") and settings.ENV == "prod":
        uri = uri.replace("redis://", "rediss://", 1)
    return uri


def build_limiter() -> Limiter:
    storage_uri = _storage_uri()
    try:
        if storage_uri:
            logger.info("Initializing rate limiter with Redis storage")
            return Limiter(
                key_func=get_real_ip,
                storage_uri=storage_uri,
                strategy="fixed-window",
                storage_options={"socket_connect_timeout": 5, "retry_on_timeout": True},
            )
    except Exception as e:
        # The API must stay up without Redis
        logger.error(f"Failed to configure Redis rate limiting: {e}")

    logger.warning("REDIS_URL not set or unusable. Using in-memory rate limiting.")
    return Limiter(key_func=get_real_ip)


limiter = build_limiter()


def submission_rate_limit() -> str:
    return settings.SUBMISSION_RATE_LIMIT
