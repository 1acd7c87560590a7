from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from app.shopgate.core.logging import log_json

logger = logging.getLogger("shopgate.notifications")

APPROVAL_SUBMITTED = "approval.submitted"
APPROVAL_DECIDED = "approval.decided"
STATUS_CASCADED = "status.cascaded"


@dataclass(frozen=True)
class NotificationEvent:
    kind: str
    shop_id: str | None
    payload: dict
    occurred_at: datetime = field(default_factory=datetime.utcnow)


class NotificationSink(Protocol):
    def publish(self, event: NotificationEvent) -> None: ...


class LoggingNotificationSink:
    """Default sink: hands events to the log stream for an external subscriber."""

    def publish(self, event: NotificationEvent) -> None:
        log_json(
            logger,
            {
                "event": event.kind,
                "shop_id": event.shop_id,
                "payload": event.payload,
                "occurred_at": event.occurred_at,
            },
        )


def get_notification_sink() -> NotificationSink:
    return LoggingNotificationSink()
