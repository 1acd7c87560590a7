from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.shopgate.core.config import settings
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.notifications import NotificationEvent, NotificationSink

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Transaction boundary for privileged mutations.

    Entity changes and their audit entries are staged on the session and
    committed together on a clean exit; any exception rolls back all of it.
    Notification events are only published once the commit succeeded.
    """

    def __init__(self, db, notifier: NotificationSink | None = None):
        self.db = db
        self.notifier = notifier
        self._events: list[NotificationEvent] = []
        self.committed = False

    def __enter__(self) -> "UnitOfWork":
        self._events = []
        self.committed = False
        self._apply_timeout()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.db.rollback()
            self._events = []
            return False
        try:
            self.db.commit()
        except IntegrityError as error:
            self.db.rollback()
            self._events = []
            raise AppError(ErrorCatalog.TRANSACTION_CONFLICT, details={"type": error.__class__.__name__}) from error
        except Exception:
            self.db.rollback()
            self._events = []
            raise
        self.committed = True
        self._publish()
        return False

    def emit(self, event: NotificationEvent) -> None:
        self._events.append(event)

    def _apply_timeout(self) -> None:
        bind = self.db.get_bind()
        if bind.dialect.name != "postgresql" or settings.TRANSACTION_TIMEOUT_MS <= 0:
            return
        timeout_ms = int(settings.TRANSACTION_TIMEOUT_MS)
        self.db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
        self.db.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))

    def _publish(self) -> None:
        events, self._events = self._events, []
        if self.notifier is None:
            return
        for event in events:
            try:
                self.notifier.publish(event)
            except Exception:
                logger.exception("Failed to publish notification", extra={"kind": event.kind})
