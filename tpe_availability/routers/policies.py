"""
Policies router.

GET    /policies          — all policies, newest first
GET    /policies/{id}     — one policy with its version snapshots
POST   /policies          — create (version 1 + snapshot)
PUT    /policies/{id}     — partial update; shape changes bump the version
DELETE /policies/{id}     — delete policy, snapshots and week locks
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tpe_availability.db.base import get_db
from tpe_availability.models.policy import Policy
from tpe_availability.models.policy_version import PolicyVersion
from tpe_availability.schemas.common import ErrorResponse
from tpe_availability.schemas.policy import (
    PolicyCreateRequest,
    PolicyDetailResponse,
    PolicyListResponse,
    PolicyResponse,
    PolicyUpdateRequest,
    PolicyUpdateResponse,
    PolicyVersionResponse,
)
from tpe_availability.services.policy_service import (
    create_policy,
    delete_policy,
    get_policy,
    list_policies,
    list_versions,
    update_policy,
)

router = APIRouter(prefix="/policies", tags=["policies"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def policy_to_response(p: Policy) -> PolicyResponse:
    return PolicyResponse(
        id=p.id,
        name=p.name,
        status=_ev(p.status),
        current_version=p.current_version,
        use_tpe_on=p.use_tpe_on,
        use_internet=p.use_internet,
        use_geofence=p.use_geofence,
        use_battery=p.use_battery,
        use_paper=p.use_paper,
        battery_min_pct=p.battery_min_pct,
        daily_fail_n=p.daily_fail_n,
        weekly_fail_days=p.weekly_fail_days,
        weekly_fail_slots=p.weekly_fail_slots,
        paper_mode=_ev(p.paper_mode),
        slot_hours=list(p.slot_hours or []),
        auto_failure_mode=_ev(p.auto_failure_mode),
        created_at=p.created_at.isoformat() if p.created_at else None,
        updated_at=p.updated_at.isoformat() if p.updated_at else None,
    )


def _version_to_response(v: PolicyVersion) -> PolicyVersionResponse:
    return PolicyVersionResponse(
        policy_id=v.policy_id,
        version=v.version,
        name=v.name,
        status=v.status,
        use_tpe_on=v.use_tpe_on,
        use_internet=v.use_internet,
        use_geofence=v.use_geofence,
        use_battery=v.use_battery,
        use_paper=v.use_paper,
        paper_mode=v.paper_mode,
        battery_min_pct=v.battery_min_pct,
        daily_fail_n=v.daily_fail_n,
        weekly_fail_days=v.weekly_fail_days,
        weekly_fail_slots=v.weekly_fail_slots,
        slot_hours=list(v.slot_hours or []),
        created_at=v.created_at.isoformat() if v.created_at else None,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=PolicyListResponse, summary="List policies (newest first)")
def list_endpoint(db: Session = Depends(get_db)):
    return PolicyListResponse(data=[policy_to_response(p) for p in list_policies(db)])


@router.get(
    "/{policy_id}",
    response_model=PolicyDetailResponse,
    summary="Policy with its version history",
    responses={404: {"model": ErrorResponse, "description": "Policy not found."}},
)
def get_endpoint(policy_id: int, db: Session = Depends(get_db)):
    policy = get_policy(db, policy_id)
    return PolicyDetailResponse(
        data=policy_to_response(policy),
        versions=[_version_to_response(v) for v in list_versions(db, policy_id)],
    )


@router.post(
    "",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a policy",
    responses={422: {"model": ErrorResponse, "description": "Invalid shape (e.g. no valid slot hour)."}},
)
def create_endpoint(payload: PolicyCreateRequest, db: Session = Depends(get_db)):
    """
    Create a policy at version 1 and store its first immutable snapshot.
    Omitted shape fields take the defaults (all checks on, battery 20 %,
    1 failing slot per day, 1 failing day or 6 failing slots per week,
    strict paper mode, slots 12-15 and 17-19).
    """
    policy = create_policy(db, payload.model_dump(exclude_none=True))
    return policy_to_response(policy)


@router.put(
    "/{policy_id}",
    response_model=PolicyUpdateResponse,
    summary="Update a policy",
    responses={404: {"model": ErrorResponse, "description": "Policy not found."}},
)
def update_endpoint(policy_id: int, payload: PolicyUpdateRequest, db: Session = Depends(get_db)):
    """
    Apply the fields present in the body.

    Changing any toggle, threshold, `paper_mode` or `slot_hours` increments
    `current_version` by one and stores a snapshot; `bumped_version` is then
    the new version. Changing only `name`, `status` or `auto_failure_mode`
    never creates a version.

    Send `"weekly_fail_days": null` to disable that weekly threshold.
    """
    result = update_policy(db, policy_id, payload.model_dump(exclude_unset=True))
    return PolicyUpdateResponse(
        data=policy_to_response(result.policy),
        bumped_version=result.bumped_version,
    )


@router.delete(
    "/{policy_id}",
    summary="Delete a policy",
    responses={404: {"model": ErrorResponse, "description": "Policy not found."}},
)
def delete_endpoint(policy_id: int, db: Session = Depends(get_db)):
    delete_policy(db, policy_id)
    return {"ok": True}
