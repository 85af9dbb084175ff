"""
Policy and week-lock schemas.

POST /policies          PolicyCreateRequest -> PolicyResponse
PUT  /policies/{id}     PolicyUpdateRequest -> PolicyUpdateResponse
GET  /policies/{id}                         -> PolicyDetailResponse
PUT  /week-locks        WeekLockRequest     -> WeekLockResponse
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


PolicyStatusLiteral = Literal["draft", "active", "archived"]
PaperModeLiteral = Literal["strict", "lenient"]
AutoFailureModeLiteral = Literal["skip", "abort"]


class _ShapeFields(BaseModel):
    """Fields that change evaluation outcomes. All optional on input."""
    use_tpe_on: Optional[bool] = Field(default=None, description="Check connectivity status and offline duration.")
    use_internet: Optional[bool] = Field(default=None, description="Check signal level (minimum 2).")
    use_geofence: Optional[bool] = Field(default=None, description="Check the terminal is inside its geofence.")
    use_battery: Optional[bool] = Field(default=None, description="Check battery level / low-voltage printer hint.")
    use_paper: Optional[bool] = Field(default=None, description="Check printer paper state.")
    battery_min_pct: Optional[int] = Field(default=None, ge=0, le=100, examples=[20])
    daily_fail_n: Optional[int] = Field(
        default=None, ge=0,
        description="Day is unavailable once failing slots reach this number.",
        examples=[1],
    )
    weekly_fail_days: Optional[int] = Field(
        default=None, ge=0,
        description="Week is unavailable once failing days reach this number (0/null disables).",
    )
    weekly_fail_slots: Optional[int] = Field(
        default=None, ge=0,
        description="Week is unavailable once failing slots reach this number (0/null disables).",
    )
    paper_mode: Optional[PaperModeLiteral] = Field(
        default=None,
        description='"strict": unknown paper state fails the slot; "lenient": warning only.',
    )
    slot_hours: Optional[list[int]] = Field(
        default=None,
        min_length=1,
        description="Hours of day (0-23) evaluated as slots. De-duplicated and sorted.",
        examples=[[12, 13, 14, 15, 17, 18, 19]],
    )


class PolicyCreateRequest(_ShapeFields):
    name: str = Field(default="", max_length=128)
    status: PolicyStatusLiteral = "draft"
    auto_failure_mode: AutoFailureModeLiteral = Field(
        default="skip",
        description="Weekly auto recompute: skip days that fail, or abort the week.",
    )


class PolicyUpdateRequest(_ShapeFields):
    """Partial update. Only fields present in the body are applied."""
    name: Optional[str] = Field(default=None, max_length=128)
    status: Optional[PolicyStatusLiteral] = None
    auto_failure_mode: Optional[AutoFailureModeLiteral] = None


class PolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: str
    current_version: int
    use_tpe_on: bool
    use_internet: bool
    use_geofence: bool
    use_battery: bool
    use_paper: bool
    battery_min_pct: int
    daily_fail_n: int
    weekly_fail_days: Optional[int]
    weekly_fail_slots: Optional[int]
    paper_mode: str
    slot_hours: list[int]
    auto_failure_mode: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PolicyVersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    policy_id: int
    version: int
    name: str
    status: str
    use_tpe_on: bool
    use_internet: bool
    use_geofence: bool
    use_battery: bool
    use_paper: bool
    paper_mode: str
    battery_min_pct: int
    daily_fail_n: int
    weekly_fail_days: Optional[int]
    weekly_fail_slots: Optional[int]
    slot_hours: list[int]
    created_at: Optional[str] = None


class PolicyDetailResponse(BaseModel):
    data: PolicyResponse
    versions: list[PolicyVersionResponse] = Field(description="Snapshots, newest first.")


class PolicyListResponse(BaseModel):
    data: list[PolicyResponse]


class PolicyUpdateResponse(BaseModel):
    data: PolicyResponse
    bumped_version: Optional[int] = Field(
        default=None,
        description="New version number when the update changed the policy shape, else null.",
    )


class WeekLockRequest(BaseModel):
    week_year: int = Field(ge=1970, le=9999, examples=[2025])
    week_number: int = Field(ge=1, le=53, examples=[10])
    policy_id: int = Field(ge=1)
    policy_version: Optional[int] = Field(
        default=None, ge=1,
        description="Version to pin. Defaults to the policy's current version.",
    )


class WeekLockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    week_year: int
    week_number: int
    policy_id: int
    policy_version: Optional[int]
    created_at: Optional[str] = None


class WeekLockListResponse(BaseModel):
    data: list[WeekLockResponse]
