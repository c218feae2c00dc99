from app.schemas.leak import (
    LeakAction,
    LeakObservation,
    LeakRecord,
    LeakResult,
    LeakStatus,
    LeakSyncResponse,
    ResolveResponse,
    Severity,
)

__all__ = [
    "LeakAction",
    "LeakObservation",
    "LeakRecord",
    "LeakResult",
    "LeakStatus",
    "LeakSyncResponse",
    "ResolveResponse",
    "Severity",
]
