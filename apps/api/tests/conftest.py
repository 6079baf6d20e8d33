"""Test configuration and fixtures."""

import os

# engage.core.database refuses to import without a URL; tests build their own engines.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from pathlib import Path
from typing import Iterable, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker

from engage.core.database import Base, make_engine
from engage.models.automation_marker import AutomationMarker  # noqa: F401
from engage.models.company import Company
from engage.models.employee import Employee
from engage.models.employee_event import EmployeeEvent
from engage.models.template import Template
from engage.models.timeline_item import TimelineItem  # noqa: F401


@pytest.fixture
def session_factory(tmp_path: Path):
    """A file-backed SQLite database; the automation run uses several threads."""
    engine = make_engine(f"sqlite:///{tmp_path / 'engage.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


class Factory:
    """Builds committed rows for tests."""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def company(self, name: str = "Acme") -> Company:
        return self._save(Company(name=name))

    def employee(
        self,
        company: Company,
        name: str = "Jamie",
        birthday: Optional[date] = None,
        hire_date: Optional[date] = None,
        **kwargs,
    ) -> Employee:
        return self._save(
            Employee(
                company_id=company.company_id,
                name=name,
                email=f"{name.lower()}@example.com",
                birthday=birthday,
                hire_date=hire_date,
                **kwargs,
            )
        )

    def template(self, company: Company, name: str = "Happy Birthday", tags: Iterable[str] = ("birthday",), **kwargs) -> Template:
        return self._save(Template(company_id=company.company_id, name=name, tags=list(tags), **kwargs))

    def event(self, employee: Employee, name: str, event_date: date, template: Optional[Template] = None, **kwargs) -> EmployeeEvent:
        return self._save(
            EmployeeEvent(
                employee_id=employee.employee_id,
                company_id=employee.company_id,
                name=name,
                event_date=event_date,
                template_id=template.template_id if template else None,
                **kwargs,
            )
        )


@pytest.fixture
def factory(db: Session) -> Factory:
    return Factory(db)
