"""
Week locks router.

GET    /week-locks                            — all locks, latest week first
PUT    /week-locks                            — pin a policy (version) to an ISO week
DELETE /week-locks/{week_year}/{week_number}  — remove a lock
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tpe_availability.db.base import get_db
from tpe_availability.models.week_lock import PolicyWeekLock
from tpe_availability.schemas.common import ErrorResponse
from tpe_availability.schemas.policy import WeekLockListResponse, WeekLockRequest, WeekLockResponse
from tpe_availability.services.policy_service import delete_week_lock, list_week_locks, set_week_lock

router = APIRouter(prefix="/week-locks", tags=["week-locks"])


def _lock_to_response(lock: PolicyWeekLock) -> WeekLockResponse:
    return WeekLockResponse(
        id=lock.id,
        week_year=lock.week_year,
        week_number=lock.week_number,
        policy_id=lock.policy_id,
        policy_version=lock.policy_version,
        created_at=lock.created_at.isoformat() if lock.created_at else None,
    )


@router.get("", response_model=WeekLockListResponse, summary="List week locks")
def list_endpoint(db: Session = Depends(get_db)):
    return WeekLockListResponse(data=[_lock_to_response(lk) for lk in list_week_locks(db)])


@router.put(
    "",
    response_model=WeekLockResponse,
    summary="Pin a policy to an ISO week",
    responses={404: {"model": ErrorResponse, "description": "Policy or policy version not found."}},
)
def put_endpoint(payload: WeekLockRequest, db: Session = Depends(get_db)):
    """
    Daily and weekly computations of that ISO week will use the locked
    policy, evaluated with the pinned version's shape, whatever policy is
    active at computation time. Replaces any existing lock for the week.
    """
    lock = set_week_lock(
        db,
        week_year=payload.week_year,
        week_number=payload.week_number,
        policy_id=payload.policy_id,
        policy_version=payload.policy_version,
    )
    return _lock_to_response(lock)


@router.delete(
    "/{week_year}/{week_number}",
    summary="Remove a week lock",
    responses={404: {"model": ErrorResponse, "description": "No lock for that week."}},
)
def delete_endpoint(week_year: int, week_number: int, db: Session = Depends(get_db)):
    delete_week_lock(db, week_year, week_number)
    return {"ok": True}
