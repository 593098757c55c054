from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from roomguard.api.deps import get_current_user, get_db, require_roles
from roomguard.models.user import User, UserRole
from roomguard.schemas.class_group import ClassGroupCreate, ClassGroupOut, ClassGroupUpdate
from roomguard.schemas.conflict import SingleEntryCheckOut, SingleEntryCheckRequest
from roomguard.schemas.timetable import TimetableEntryOut, TimetableReplaceRequest
from roomguard.services import class_groups as class_group_service
from roomguard.services.conflict_checker import ConflictChecker

router = APIRouter()


@router.get("/", response_model=list[ClassGroupOut])
def list_class_groups(
    professor_id: str | None = Query(default=None),
    branch_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ClassGroupOut]:
    return class_group_service.list_class_groups(db, professor_id=professor_id, branch_id=branch_id)


@router.post("/", response_model=ClassGroupOut, status_code=status.HTTP_201_CREATED)
def create_class_group(
    payload: ClassGroupCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ClassGroupOut:
    return class_group_service.create_class_group(db, payload, actor=current_user)


@router.get("/{class_group_id}", response_model=ClassGroupOut)
def get_class_group(
    class_group_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ClassGroupOut:
    return class_group_service.get_class_group(db, class_group_id)


@router.patch("/{class_group_id}", response_model=ClassGroupOut)
def update_class_group(
    class_group_id: str,
    payload: ClassGroupUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> ClassGroupOut:
    return class_group_service.update_class_group(db, class_group_id, payload, actor=current_user)


@router.delete("/{class_group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_class_group(
    class_group_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> None:
    class_group_service.delete_class_group(db, class_group_id, actor=current_user)


@router.put("/{class_group_id}/timetable", response_model=list[TimetableEntryOut])
def replace_timetable(
    class_group_id: str,
    payload: TimetableReplaceRequest,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    return class_group_service.validate_and_save_timetable(db, class_group_id, payload.entries, actor=current_user)


@router.post("/{class_group_id}/timetable/check", response_model=SingleEntryCheckOut)
def check_timetable_entry(
    class_group_id: str,
    payload: SingleEntryCheckRequest,
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.professor)),
    db: Session = Depends(get_db),
) -> SingleEntryCheckOut:
    report = ConflictChecker(db).check_single_entry_conflicts(class_group_id, payload.entry)
    return SingleEntryCheckOut.model_validate(report.to_dict())
