import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from ..config import settings

logger = logging.getLogger("handscript")

_mongo_client: Optional[AsyncIOMotorClient] = None


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(handler)


def _error_collection():
    global _mongo_client
    if not settings.MONGO_URL:
        return None
    if _mongo_client is None:
        _mongo_client = AsyncIOMotorClient(settings.MONGO_URL)
    return _mongo_client[settings.MONGO_DB]["logs"]


# Log failed stages; Mongo is written only when MONGO_URL is configured
async def log_error(stage: str, error: str, extra: Optional[Dict[str, Any]] = None):
    logger.error("[%s] %s", stage, error, extra={"stage": stage})
    collection = _error_collection()
    if collection is None:
        return
    try:
        await collection.insert_one({
            "created_at": datetime.now(timezone.utc),
            "stage": stage,
            "error": error,
            "extra": extra or {},
        })
    except Exception:
        logger.exception("[log_error] could not write to Mongo")
