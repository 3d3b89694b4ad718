"""Notification intents published over Redis pub/sub.

Delivery (push, in-app feed) belongs to a separate consumer that subscribes
to ``intents:user:*``; this module only records what happened.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "intents:user:"


async def emit_intent(redis: object | None, user_id: str, kind: str, **data: Any) -> bool:
    """Publish a notification intent for ``user_id``.

    Returns False when Redis is absent or publishing failed; never raises.
    """
    if redis is None:
        return False

    message = {
        "kind": kind,
        "user_id": user_id,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        await redis.publish(  # type: ignore[union-attr]
            f"{CHANNEL_PREFIX}{user_id}",
            json.dumps(message, default=str),
        )
    except Exception:
        logger.warning("Failed to publish %s intent for user %s", kind, user_id, exc_info=True)
        return False
    return True
