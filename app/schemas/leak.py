import math
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

LeakAction = Literal["created", "updated", "none"]


class Severity(str, Enum):
    NORMAL = "normal"
    MODERATE = "moderate"
    CRITICAL = "critical"
    SEVERE = "severe"


class LeakStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


def _coerce_measure(value: Any) -> float:
    # sensors report gaps as null/"" ; never reject an observation for it
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number < 0:
        return 0.0
    return number


def _coerce_epoch_ms(value: Any) -> Optional[int]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


class LeakObservation(BaseModel):
    asset_id: str = Field(..., examples=["A1"])
    asset_name: str = ""
    network_id: str = ""
    current_lpm: float = Field(0.0, description="Current flow rate in litres per minute.")
    current_pressure: float = 0.0
    start_time: Optional[int] = Field(None, description="Leak start, epoch milliseconds; unreadable values become None.")
    current_db_id: Optional[str] = Field(None, description="Record id once the leak has been persisted.")

    contact_name: Optional[str] = None
    contact_emails: List[str] = Field(default_factory=list)
    contact_phones: List[str] = Field(default_factory=list)
    previous_severity: Optional[Severity] = None

    @field_validator("current_lpm", "current_pressure", mode="before")
    @classmethod
    def coerce_measure(cls, value: Any) -> float:
        return _coerce_measure(value)

    @field_validator("start_time", mode="before")
    @classmethod
    def coerce_start_time(cls, value: Any) -> Optional[int]:
        return _coerce_epoch_ms(value)

    @field_validator("current_db_id", mode="before")
    @classmethod
    def blank_id_is_none(cls, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value

    @field_validator("contact_emails", "contact_phones", mode="before")
    @classmethod
    def none_is_empty(cls, value: Any) -> List[str]:
        return value or []


class LeakResult(BaseModel):
    record_id: Optional[str] = None
    action: LeakAction
    severity: Severity


class LeakSyncResponse(LeakResult):
    alert_id: Optional[str] = None


class LeakRecord(BaseModel):
    id: str
    asset_id: str
    asset_name: str = ""
    network_id: str = ""
    start_time: str
    lpm: float = 0.0
    current_pressure: Optional[float] = None
    duration_minutes: Optional[float] = None
    hourly_cost: float = 0.0
    status: LeakStatus
    severity: Severity
    created_at: Optional[str] = None
    last_update: Optional[str] = None
    end_time: Optional[str] = None


class ResolveResponse(BaseModel):
    record_id: str
    status: LeakStatus
    end_time: Optional[str] = None
