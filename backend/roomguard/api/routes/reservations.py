from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from roomguard.api.deps import ensure_self_or_admin, get_current_user, get_db, require_roles
from roomguard.models.reservation import ReservationStatus
from roomguard.models.user import User, UserRole
from roomguard.schemas.reservation import ReservationCreate, ReservationOut, ReservationReject, ReservationUpdate
from roomguard.services import reservations as reservation_service

router = APIRouter()


@router.post("/", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReservationOut:
    return reservation_service.create_reservation(db, current_user, payload)


@router.get("/mine", response_model=list[ReservationOut])
def my_reservations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ReservationOut]:
    return reservation_service.list_user_reservations(db, current_user.id)


@router.get("/", response_model=list[ReservationOut])
def list_reservations(
    reservation_status: ReservationStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> list[ReservationOut]:
    return reservation_service.list_reservations(db, status=reservation_status, limit=limit)


@router.get("/{reservation_id}", response_model=ReservationOut)
def get_reservation(
    reservation_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReservationOut:
    reservation = reservation_service.get_reservation(db, reservation_id)
    ensure_self_or_admin(current_user, reservation.user_id)
    return reservation


@router.put("/{reservation_id}", response_model=ReservationOut)
def edit_reservation(
    reservation_id: str,
    payload: ReservationUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReservationOut:
    return reservation_service.edit_reservation(db, current_user, reservation_id, payload)


@router.post("/{reservation_id}/approve", response_model=ReservationOut)
def approve_reservation(
    reservation_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ReservationOut:
    return reservation_service.approve_reservation(db, reservation_id, actor=current_user)


@router.post("/{reservation_id}/reject", response_model=ReservationOut)
def reject_reservation(
    reservation_id: str,
    payload: ReservationReject,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ReservationOut:
    return reservation_service.reject_reservation(db, reservation_id, payload.reason, actor=current_user)


@router.post("/{reservation_id}/cancel", response_model=ReservationOut)
def cancel_reservation(
    reservation_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReservationOut:
    return reservation_service.cancel_reservation(db, current_user, reservation_id)
