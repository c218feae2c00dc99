"""Leak event synchronizer.

Keeps exactly one ``active`` leak record per asset in the document store and
refreshes it on every observation until the caller resolves it.

Each call performs at most one write. The duplicate-guard read only happens
on the first crossing of the debounce threshold, when the caller does not
know the record id yet. Persistence failures in :meth:`sync_leak_event`
propagate so the polling loop can simply try again on its next tick;
:meth:`resolve_leak` is best-effort and only logs them.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from app.core.config import settings
from app.core.errors import DuplicateActiveLeakError, InvalidTransitionError
from app.core.logging import get_logger, log_event
from app.schemas.leak import LeakObservation, LeakResult, LeakStatus, Severity
from app.services.lifecycle import LeakEvent, LeakState, transition
from app.services.severity import classify_severity, elapsed_minutes, hourly_cost
from app.storage import DocumentStore, StoredRecord

logger = get_logger("leak_sync")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def epoch_ms_to_iso(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")


class LeakSynchronizer:
    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Optional[Clock] = None,
        collection: Optional[str] = None,
        annual_cost_per_lpm: Optional[float] = None,
        hours_per_year: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock or wall_clock_ms
        self.collection = collection or settings.LEAKS_COLLECTION
        self.annual_cost_per_lpm = annual_cost_per_lpm
        self.hours_per_year = hours_per_year

    def sync_leak_event(self, observation: LeakObservation) -> LeakResult:
        if observation.start_time is None:
            # unreadable start time: treat the leak as just started
            duration = 0.0
        else:
            duration = elapsed_minutes(observation.start_time, self.clock())
        severity = classify_severity(duration)
        if severity is Severity.NORMAL:
            return LeakResult(record_id=None, action="none", severity=Severity.NORMAL)

        cost = hourly_cost(observation.current_lpm, self.annual_cost_per_lpm, self.hours_per_year)
        state = LeakState.from_record(observation.current_db_id)

        try:
            if state is LeakState.NOT_REPORTED:
                return self._report(observation, severity, duration, cost)
            return self._observe(observation, severity, duration, cost)
        except Exception as exc:
            logger.exception(
                "leak sync failed",
                extra={
                    "event": "LEAK_SYNC_FAIL",
                    "asset_id": observation.asset_id,
                    "record_id": observation.current_db_id,
                    "severity": severity.value,
                    "error_code": getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                },
            )
            raise

    def find_active(self, asset_id: str) -> Optional[StoredRecord]:
        matches = self.store.query_records(
            self.collection,
            {"asset_id": asset_id, "status": LeakStatus.ACTIVE.value},
            limit=1,
        )
        return matches[0] if matches else None

    def _report(self, observation: LeakObservation, severity: Severity, duration: float, cost: float) -> LeakResult:
        existing = self.find_active(observation.asset_id)
        if existing is not None:
            return self._reuse(existing, observation, severity)

        now = self.store.now()
        fields: Dict[str, Any] = {
            "asset_id": observation.asset_id,
            "asset_name": observation.asset_name,
            "network_id": observation.network_id,
            "start_time": epoch_ms_to_iso(observation.start_time),
            "lpm": observation.current_lpm,
            "current_pressure": observation.current_pressure,
            "duration_minutes": duration,
            "hourly_cost": cost,
            "status": LeakStatus.ACTIVE.value,
            "severity": severity.value,
            "created_at": now,
            "last_update": now,
        }
        try:
            record_id = self.store.create_record(self.collection, fields)
        except DuplicateActiveLeakError:
            # lost a race with a concurrent first crossing; adopt the winner
            existing = self.find_active(observation.asset_id)
            if existing is None:
                raise
            return self._reuse(existing, observation, severity)

        log_event(
            logger,
            "leak record created",
            event="LEAK_CREATED",
            asset_id=observation.asset_id,
            record_id=record_id,
            action="created",
            severity=severity.value,
        )
        return LeakResult(record_id=record_id, action="created", severity=severity)

    def _reuse(self, existing: StoredRecord, observation: LeakObservation, severity: Severity) -> LeakResult:
        log_event(
            logger,
            "active leak already recorded",
            event="LEAK_DUPLICATE_GUARD",
            asset_id=observation.asset_id,
            record_id=existing.id,
            action="updated",
            severity=severity.value,
        )
        return LeakResult(record_id=existing.id, action="updated", severity=severity)

    def _observe(self, observation: LeakObservation, severity: Severity, duration: float, cost: float) -> LeakResult:
        record_id = observation.current_db_id
        self.store.update_record(
            self.collection,
            record_id,
            {
                "duration_minutes": duration,
                "current_pressure": observation.current_pressure,
                "severity": severity.value,
                "lpm": observation.current_lpm,
                "hourly_cost": cost,
                "last_update": self.store.now(),
            },
        )
        log_event(
            logger,
            "leak record updated",
            event="LEAK_UPDATED",
            asset_id=observation.asset_id,
            record_id=record_id,
            action="updated",
            severity=severity.value,
        )
        return LeakResult(record_id=record_id, action="updated", severity=severity)

    def resolve_leak(self, record_id: Optional[str]) -> None:
        if not record_id:
            return
        try:
            record = self.store.get_record(self.collection, record_id)
            if record is None:
                logger.warning(
                    "leak record not found",
                    extra={"event": "LEAK_RESOLVE_SKIP", "record_id": record_id, "error_code": "RECORD_NOT_FOUND"},
                )
                return
            state = LeakState.from_record(record.id, record.fields.get("status"))
            try:
                resolved = transition(state, LeakEvent.RESOLVE)
            except InvalidTransitionError:
                logger.info(
                    "leak record already resolved",
                    extra={"event": "LEAK_RESOLVE_SKIP", "record_id": record_id},
                )
                return
            self.store.update_record(
                self.collection,
                record_id,
                {"status": resolved.value, "end_time": self.store.now()},
            )
        except Exception as exc:
            # best-effort: a failed resolve must never break the monitoring loop
            logger.exception(
                "failed to resolve leak",
                extra={
                    "event": "LEAK_RESOLVE_FAIL",
                    "record_id": record_id,
                    "error_code": getattr(exc, "error_code", "UNEXPECTED_ERROR"),
                },
            )
            return

        log_event(
            logger,
            f"leak {record_id} resolved",
            event="LEAK_RESOLVED",
            asset_id=record.fields.get("asset_id"),
            record_id=record_id,
        )


def sync_leak_event(store: DocumentStore, observation: LeakObservation, **kwargs: Any) -> LeakResult:
    return LeakSynchronizer(store, **kwargs).sync_leak_event(observation)


def resolve_leak(store: DocumentStore, record_id: Optional[str], **kwargs: Any) -> None:
    LeakSynchronizer(store, **kwargs).resolve_leak(record_id)
