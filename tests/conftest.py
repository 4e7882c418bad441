import datetime as dt
import itertools
import sys
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from palletpark import geometry  # noqa: E402
from palletpark.states import ApprovalStatus, StructureKind, UserRole  # noqa: E402
from palletpark_web import models  # noqa: E402


class Factory:
    """Creates persisted rows with sensible defaults."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._counter = itertools.count(1)
        self._clock = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)

    def _tick(self) -> dt.datetime:
        self._clock += dt.timedelta(seconds=1)
        return self._clock

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def user(self, role=UserRole.CUSTOMER, username=None):
        name = username or f"{UserRole(role).value}-{next(self._counter)}"
        return self._save(
            models.User(username=name, hashed_password="hashed", role=UserRole(role).value)
        )

    def project(self, name=None):
        return self._save(
            models.Project(
                project_name=name or f"Project {next(self._counter)}",
                society_name="Green Acres",
            )
        )

    def structure(self, project, kind=StructureKind.TOWER, levels=3, columns=2, below=None):
        return self._save(
            models.Structure(
                project_id=project.id,
                kind=StructureKind(kind).value,
                levels_above_ground=levels,
                levels_below_ground=below,
                columns=columns,
                total_slots=geometry.total_slots(kind, levels, columns, below),
            )
        )

    def operator(self, structure, status=ApprovalStatus.APPROVED, user=None):
        user = user or self.user(UserRole.OPERATOR)
        return self._save(
            models.Operator(
                user_id=user.id,
                project_id=structure.project_id,
                structure_id=structure.id,
                first_name="Olga",
                status=ApprovalStatus(status).value,
                created_at=self._tick(),
            )
        )

    def customer(self, structure, status=ApprovalStatus.APPROVED, user=None):
        user = user or self.user(UserRole.CUSTOMER)
        return self._save(
            models.Customer(
                user_id=user.id,
                project_id=structure.project_id,
                structure_id=structure.id,
                first_name="Chris",
                status=ApprovalStatus(status).value,
            )
        )

    def car(self, user_id, number=None):
        return self._save(
            models.Car(
                user_id=user_id,
                car_company="Tata",
                car_model="Nexon",
                car_number=number or f"MH12AB{next(self._counter):04d}",
                created_at=self._tick(),
            )
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def factory(session):
    return Factory(session)
