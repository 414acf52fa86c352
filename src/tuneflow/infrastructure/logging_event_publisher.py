"""Simple logging-backed implementation of the event publisher."""

from __future__ import annotations

import logging

from tuneflow.domain.events import DomainEvent

LOGGER = logging.getLogger("tuneflow.events")


class LoggingEventPublisher:
    """Emit release drafting events as structured log records."""

    def publish(self, event: DomainEvent) -> None:
        LOGGER.info(
            "release_event_emitted",
            extra={
                "event_name": type(event).__name__,
                "correlation_id": event.correlation_id,
                "payload_summary": event.payload_summary,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
