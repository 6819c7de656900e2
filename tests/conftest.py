"""Shared fixtures: a throwaway SQLite database per test and an API client."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Sequence, Tuple

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from drivr.app import app
from drivr.core import get_session
from drivr.models import DriveSession, GpsSample, Segment, SessionStatus, User, Vehicle
from drivr.services.segments import build_segment

BASE_TIME = datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)

# "Col Example": three collinear vertices heading north-north-east.
COL_ROUTE: List[Tuple[float, float]] = [(45.000, 6.000), (45.010, 6.005), (45.020, 6.010)]

# Five samples along COL_ROUTE: every vertex plus the midpoint of each leg.
COL_TRACK: List[Tuple[float, float]] = [
    (45.000, 6.000),
    (45.005, 6.0025),
    (45.010, 6.005),
    (45.015, 6.0075),
    (45.020, 6.010),
]

# Roughly 160 m east of the middle vertex, well outside a 30 m tolerance.
OFF_ROUTE: Tuple[float, float] = (45.010, 6.007)


def make_samples(
    coords: Sequence[Tuple[float, float]],
    *,
    step_s: float = 60,
    speed_kmh: Optional[float] = 60.0,
    session_id: int = 1,
    start: datetime = BASE_TIME,
) -> List[GpsSample]:
    """Unsaved samples at a fixed interval."""

    return [
        GpsSample(
            session_id=session_id,
            latitude=lat,
            longitude=lon,
            speed_kmh=speed_kmh,
            recorded_at=start + timedelta(seconds=idx * step_s),
            sequence_number=idx + 1,
        )
        for idx, (lat, lon) in enumerate(coords)
    ]


def make_segment(
    segment_id: int = 1,
    route: Sequence[Tuple[float, float]] = COL_ROUTE,
    tolerance_m: float = 30.0,
    name: str = "Col Example",
) -> Segment:
    segment = build_segment(name=name, route=route, tolerance_m=tolerance_m)
    segment.id = segment_id
    return segment


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine) -> Iterator[TestClient]:
    def _override_session() -> Iterator[Session]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _override_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def driver_factory(db):
    """Create a user with one vehicle; returns (user, vehicle)."""

    def _create(username: str) -> Tuple[User, Vehicle]:
        user = User(username=username, display_name=username.title())
        db.add(user)
        db.commit()
        db.refresh(user)
        vehicle = Vehicle(user_id=user.id, brand="Alpine", model="A110")
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return user, vehicle

    return _create


@pytest.fixture
def drive_factory(db):
    """Persist a session with a track; completed unless told otherwise."""

    def _create(
        user: User,
        vehicle: Vehicle,
        coords: Sequence[Tuple[float, float]] = COL_TRACK,
        *,
        step_s: float = 60,
        speed_kmh: Optional[float] = 60.0,
        status: SessionStatus = SessionStatus.COMPLETED,
    ) -> DriveSession:
        drive = DriveSession(user_id=user.id, vehicle_id=vehicle.id, status=status)
        db.add(drive)
        db.commit()
        db.refresh(drive)
        for sample in make_samples(coords, step_s=step_s, speed_kmh=speed_kmh, session_id=drive.id):
            db.add(sample)
        db.commit()
        return drive

    return _create


@pytest.fixture
def col_segment(db) -> Segment:
    """The persisted "Col Example" segment, 30 m tolerance."""

    segment = build_segment(name="Col Example", route=COL_ROUTE, tolerance_m=30.0)
    db.add(segment)
    db.commit()
    db.refresh(segment)
    return segment
