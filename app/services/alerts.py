"""Alert queue for leak notifications.

Nothing is sent from here: a document is written to the alerts collection
and an external worker delivers e-mail/WhatsApp and marks it ``sent`` or
``failed``.
"""

from __future__ import annotations

from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger, log_event
from app.schemas.leak import LeakObservation, LeakResult, Severity
from app.services.leak_sync import epoch_ms_to_iso
from app.storage import DocumentStore

logger = get_logger("alerts")


def should_alert(result: LeakResult, observation: LeakObservation) -> bool:
    """New leaks always alert; known leaks only when their severity moved."""
    if result.action == "created":
        return True
    if result.action == "updated" and observation.previous_severity is not None:
        return observation.previous_severity != result.severity
    return False


class AlertQueue:
    def __init__(self, store: DocumentStore, collection: Optional[str] = None):
        self.store = store
        self.collection = collection or settings.ALERTS_COLLECTION

    def enqueue_if_needed(self, observation: LeakObservation, severity: Severity) -> Optional[str]:
        if severity is Severity.NORMAL:
            return None

        emails = [e for e in observation.contact_emails if e]
        phones = [p for p in observation.contact_phones if p]
        if not emails and not phones:
            return None

        try:
            alert_id = self.store.create_record(
                self.collection,
                {
                    "asset_id": observation.asset_id,
                    "asset_name": observation.asset_name,
                    "network_id": observation.network_id,
                    "severity": severity.value,
                    "lpm": observation.current_lpm,
                    "pressure": observation.current_pressure,
                    "start_time": epoch_ms_to_iso(observation.start_time) if observation.start_time is not None else None,
                    "contact_group_name": observation.contact_name or None,
                    "emails": emails,
                    "phones": phones,
                    "channels": {"email": bool(emails), "whatsapp": bool(phones)},
                    "status": "pending",
                    "created_at": self.store.now(),
                },
            )
        except Exception as exc:
            # a lost alert must not fail the leak record that triggered it
            logger.exception(
                "failed to enqueue leak alert",
                extra={
                    "event": "ALERT_ENQUEUE_FAIL",
                    "asset_id": observation.asset_id,
                    "error_code": getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                },
            )
            return None

        log_event(
            logger,
            "leak alert queued",
            event="ALERT_QUEUED",
            asset_id=observation.asset_id,
            record_id=alert_id,
            severity=severity.value,
        )
        return alert_id
