from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from roomguard.api.deps import ensure_self_or_admin, get_current_user, get_db
from roomguard.models.user import User
from roomguard.schemas.timetable import TimetableEntryOut
from roomguard.services.class_groups import get_professor_timetable, get_student_timetable

router = APIRouter()


@router.get("/professors/{professor_id}", response_model=list[TimetableEntryOut])
def professor_timetable(
    professor_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    ensure_self_or_admin(current_user, professor_id)
    return get_professor_timetable(db, professor_id)


@router.get("/students/{student_id}", response_model=list[TimetableEntryOut])
def student_timetable(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TimetableEntryOut]:
    ensure_self_or_admin(current_user, student_id)
    return get_student_timetable(db, student_id)
