"""
Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database; DATABASE_URL is set before
anything from ``api`` is imported so the SQL Server driver is never loaded.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.config.database import Base, get_db
from api.models import (
    Activity,
    ActivityStatus,
    ActivityType,
    Application,
    ApplicationStatus,
    JobRequest,
    ProcessStep,
    ProcessTemplate,
)
from api.services.token import create_user_token


RECRUITER_ID = "recruiter-1"
OTHER_RECRUITER_ID = "recruiter-2"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests against the service layer")
    config.addinivalue_line("markers", "api: HTTP tests through the FastAPI app")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


class Factory:
    """Builds and commits the rows a pipeline test needs."""

    def __init__(self, db):
        self.db = db

    def template(self, *step_names: str, name: str = "Standard process") -> ProcessTemplate:
        template = ProcessTemplate(name=name)
        self.db.add(template)
        self.db.flush()
        for order, step_name in enumerate(step_names, start=1):
            self.db.add(ProcessStep(
                template_id=template.id,
                step_order=order,
                step_name=step_name,
                description=f"{step_name} with the hiring team",
            ))
        self.db.commit()
        return template

    def steps(self, template: ProcessTemplate) -> list[ProcessStep]:
        return (
            self.db.query(ProcessStep)
            .filter(ProcessStep.template_id == template.id)
            .order_by(ProcessStep.step_order)
            .all()
        )

    def job_request(self, template: ProcessTemplate = None, quantity: int = 1) -> JobRequest:
        job_request = JobRequest(
            title="Backend Engineer",
            quantity=quantity,
            process_template_id=template.id if template else None,
            recruiter_id=RECRUITER_ID,
        )
        self.db.add(job_request)
        self.db.commit()
        return job_request

    def application(
        self,
        job_request: JobRequest,
        status: ApplicationStatus = ApplicationStatus.SUBMITTED,
        recruiter_id: str = RECRUITER_ID,
        created_at: datetime = None,
    ) -> Application:
        application = Application(
            job_request_id=job_request.id,
            cv_id=1000 + (self.db.query(Application).count()),
            recruiter_id=recruiter_id,
            status=status,
        )
        if created_at:
            application.created_at = created_at
        self.db.add(application)
        self.db.commit()
        return application

    def activity(
        self,
        application: Application,
        step: ProcessStep,
        status: ActivityStatus = ActivityStatus.SCHEDULED,
        scheduled_date: datetime = None,
        notes: str = None,
    ) -> Activity:
        """Insert an activity directly, bypassing the state machine."""
        activity = Activity(
            application_id=application.id,
            process_step_id=step.id,
            activity_type=ActivityType.ONLINE,
            status=status,
            scheduled_date=scheduled_date,
            notes=notes,
        )
        self.db.add(activity)
        self.db.commit()
        return activity


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def two_step(factory):
    """Screening -> Interview pipeline with one Submitted application."""
    template = factory.template("Screening", "Interview")
    job_request = factory.job_request(template, quantity=3)
    application = factory.application(job_request)
    screening, interview = factory.steps(template)
    return application, screening, interview


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from api.main import app

    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(recruiter_id: str = RECRUITER_ID, roles: list[str] = None) -> dict:
    token = create_user_token(recruiter_id, roles or ["recruiter"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def recruiter_headers():
    return auth_headers()
