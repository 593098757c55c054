import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SWEEPS_ENABLED", "false")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roomguard.api.deps import get_db
from roomguard.core.security import create_access_token
from roomguard.db.base import Base
from roomguard.main import app
from roomguard.models import (
    Branch,
    ClassGroup,
    Reservation,
    ReservationStatus,
    Room,
    RoomCategory,
    RoomType,
    TimetableEntry,
    User,
    UserRole,
)
from roomguard.services.timetable_cache import timetable_cache


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; take over so SAVEPOINTs nest correctly.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection):
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    outbox: list[dict] = []

    def fake_send_email(*, to_email, subject, text_content, html_content=None):
        outbox.append({"to": to_email, "subject": subject, "body": text_content})

    monkeypatch.setattr("roomguard.services.notifications.send_email", fake_send_email)
    timetable_cache.invalidate()
    yield outbox
    timetable_cache.invalidate()


@pytest.fixture()
def client(session_factory, db_session):
    def override_get_db():
        # Seed reads and the request share one connection; end the seed transaction first.
        db_session.commit()
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


class Seeder:
    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def branch(self, name: str | None = None) -> Branch:
        branch = Branch(name=name or f"Branch {self._next()}")
        self.db.add(branch)
        self.db.commit()
        return branch

    def user(self, role: UserRole = UserRole.student, name: str | None = None, branch: Branch | None = None) -> User:
        index = self._next()
        user = User(
            name=name or f"{role.value.title()} {index}",
            email=f"{role.value}{index}@campus.test",
            role=role,
            branch_id=branch.id if branch is not None else None,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def room(
        self,
        room_number: str | None = None,
        *,
        category: RoomCategory = RoomCategory.classroom,
        room_type: RoomType = RoomType.lecture,
        capacity: int = 40,
    ) -> Room:
        room = Room(
            room_number=room_number or f"R-{self._next()}",
            category=category,
            type=room_type,
            capacity=capacity,
            features=[],
        )
        self.db.add(room)
        self.db.commit()
        return room

    def class_group(
        self,
        course_code: str,
        *,
        professor: User | None = None,
        branch: Branch | None = None,
        entries: list[dict] | None = None,
    ) -> ClassGroup:
        group = ClassGroup(
            name=f"{course_code} group",
            course_code=course_code,
            professor_id=professor.id if professor is not None else None,
            branch_id=branch.id if branch is not None else None,
        )
        for position, raw in enumerate(entries or []):
            values = dict(raw)
            name = values.pop("name", course_code)
            group.entries.append(TimetableEntry(position=position, name=name, **values))
        self.db.add(group)
        self.db.commit()
        return group

    def reservation(
        self,
        user: User,
        room: Room,
        on_date: date,
        start_time: str,
        end_time: str,
        status: ReservationStatus = ReservationStatus.pending,
        notes: str | None = None,
    ) -> Reservation:
        reservation = Reservation(
            user_id=user.id,
            room_id=room.id,
            date=on_date,
            start_time=start_time,
            end_time=end_time,
            purpose="Study session",
            notes=notes,
            status=status,
        )
        self.db.add(reservation)
        self.db.commit()
        return reservation


@pytest.fixture()
def seed(db_session):
    return Seeder(db_session)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers_for():
    return auth_headers
