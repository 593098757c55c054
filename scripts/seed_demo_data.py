"""Seed a small campus (rooms, one branch, demo accounts and a class group) and print bearer tokens.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py
"""

from __future__ import annotations

import os
from typing import Iterable

from sqlalchemy import select

from roomguard.core.security import create_access_token
from roomguard.db.bootstrap import ensure_runtime_schema
from roomguard.db.session import SessionLocal
from roomguard.models.branch import Branch
from roomguard.models.class_group import ClassGroup
from roomguard.models.room import Room, RoomCategory, RoomType
from roomguard.models.user import User, UserRole
from roomguard.schemas.class_group import ClassGroupCreate
from roomguard.schemas.timetable import TimetableEntryPayload
from roomguard.services.class_groups import create_class_group

BRANCH_NAME = os.getenv("DEMO_BRANCH", "GI-1")
TOKEN_MINUTES = int(os.getenv("DEMO_TOKEN_MINUTES", "720"))

DEMO_ROOMS = [
    ("Amphi A", RoomCategory.classroom, RoomType.amphitheater, 200),
    ("B-101", RoomCategory.classroom, RoomType.lecture, 40),
    ("B-102", RoomCategory.classroom, RoomType.lab, 24),
    ("S-01", RoomCategory.study_room, RoomType.study, 6),
    ("S-02", RoomCategory.study_room, RoomType.study, 8),
]

DEMO_ACCOUNTS = {
    "admin": ("Demo Admin", "admin.demo@campus.test", UserRole.admin),
    "professor": ("Demo Professor", "professor.demo@campus.test", UserRole.professor),
    "student_a": ("Demo Student A", "student.a.demo@campus.test", UserRole.student),
    "student_b": ("Demo Student B", "student.b.demo@campus.test", UserRole.student),
}


def _upsert_branch(name: str) -> Branch:
    with SessionLocal() as session:
        branch = session.execute(select(Branch).where(Branch.name == name)).scalar_one_or_none()
        if branch is None:
            branch = Branch(name=name)
            session.add(branch)
            session.commit()
            session.refresh(branch)
        return branch


def _upsert_rooms() -> None:
    with SessionLocal() as session:
        for room_number, category, room_type, capacity in DEMO_ROOMS:
            room = session.execute(select(Room).where(Room.room_number == room_number)).scalar_one_or_none()
            if room is None:
                room = Room(room_number=room_number, features=[])
                session.add(room)
            room.category = category
            room.type = room_type
            room.capacity = capacity
        session.commit()


def _upsert_user(*, name: str, email: str, role: UserRole, branch_id: str | None) -> User:
    with SessionLocal() as session:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing is None:
            existing = User(name=name, email=email, role=role, branch_id=branch_id, is_active=True)
            session.add(existing)
        else:
            existing.name = name
            existing.role = role
            existing.branch_id = branch_id
            existing.is_active = True
        session.commit()
        session.refresh(existing)
        return existing


def _ensure_class_group(professor: User, branch: Branch, admin: User) -> None:
    with SessionLocal() as session:
        exists = session.execute(select(ClassGroup.id).where(ClassGroup.course_code == "ALG101")).first()
        if exists is not None:
            return
        create_class_group(
            session,
            ClassGroupCreate(
                name="Algorithms - Group 1",
                course_code="ALG101",
                branch_id=branch.id,
                professor_id=professor.id,
                entries=[
                    TimetableEntryPayload(day="Monday", name="Lecture", location="Amphi A", start_time="09:00", end_time="11:00"),
                    TimetableEntryPayload(day="Wednesday", name="Lab", location="B-102", start_time="14:00", end_time="16:00"),
                ],
            ),
            actor=session.get(User, admin.id),
        )


def _print_accounts(items: Iterable[tuple[str, User]]) -> None:
    print("\nDemo accounts ready:")
    for label, user in items:
        token = create_access_token(user.id, expires_minutes=TOKEN_MINUTES)
        print(f"  - {label}: {user.email} | role={user.role.value}")
        print(f"    Authorization: Bearer {token}")
    print(f"\nTokens expire in {TOKEN_MINUTES} minutes.")


def main() -> None:
    ensure_runtime_schema()
    branch = _upsert_branch(BRANCH_NAME)
    _upsert_rooms()

    created_users: dict[str, User] = {}
    for key, (name, email, role) in DEMO_ACCOUNTS.items():
        created_users[key] = _upsert_user(
            name=name,
            email=email,
            role=role,
            branch_id=branch.id if role == UserRole.student else None,
        )

    _ensure_class_group(created_users["professor"], branch, created_users["admin"])
    _print_accounts(created_users.items())


if __name__ == "__main__":
    main()
