"""
Database webhook bridge.

The hosted database posts one request per row mutation:
    {"type": "UPDATE", "table": "timetable", "schema": "public",
     "record": {...}, "old_record": {...}}
Each one is published on the change feed.
"""
import hmac
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header

from portal.api.deps import get_feed
from portal.core.config import settings
from portal.core.exceptions import AuthenticationError
from portal.core.logging_config import logger
from portal.modules.auth.dependencies import get_current_admin
from portal.schemas.user import Identity
from portal.services.change_feed import ChangeEvent, ChangeFeed

router = APIRouter(prefix="/changes", tags=["Change Feed"])


def check_webhook_secret() -> bool:
    """
    Warn when the webhook accepts unsigned posts outside development.
    Returns True when the secret is configured or not required.
    """
    if settings.CHANGE_WEBHOOK_SECRET or settings.is_dev_mode():
        return True
    logger.warning(
        f"[Changes] CHANGE_WEBHOOK_SECRET is empty in {settings.ENVIRONMENT}: "
        "anyone who can reach /changes/webhook can publish change events"
    )
    return False


def verify_webhook_secret(x_webhook_secret: Optional[str] = Header(None)) -> None:
    expected = settings.CHANGE_WEBHOOK_SECRET
    if not expected:
        return
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise AuthenticationError("Invalid webhook secret")


@router.post("/webhook", dependencies=[Depends(verify_webhook_secret)])
async def receive_change(
    payload: Dict[str, Any],
    feed: ChangeFeed = Depends(get_feed),
):
    event = ChangeEvent.from_webhook(payload)
    delivered = await feed.publish(event)
    logger.info(f"[Changes] {event.kind.value} on {event.table} -> {delivered} subscriber(s)")
    return {"success": True, "delivered": delivered}


@router.get("/stats")
async def change_feed_stats(
    feed: ChangeFeed = Depends(get_feed),
    current_admin: Identity = Depends(get_current_admin),
):
    return feed.get_stats()
