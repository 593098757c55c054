from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from roomguard.api.deps import get_db, require_roles
from roomguard.models.user import User, UserRole
from roomguard.schemas.lifecycle import StatusRefreshOut, SweepResultOut
from roomguard.services.lifecycle import refresh_reservation_statuses, run_lifecycle_sweep

router = APIRouter()


@router.post("/auto-reject", response_model=SweepResultOut)
def trigger_auto_reject(
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> SweepResultOut:
    return SweepResultOut(**run_lifecycle_sweep(db))


@router.post("/refresh-statuses", response_model=StatusRefreshOut)
def trigger_status_refresh(
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> StatusRefreshOut:
    return StatusRefreshOut(**refresh_reservation_statuses(db).to_dict())
