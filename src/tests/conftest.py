"""Pytest configuration and fixtures for service layer tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from cablebook.models.base import Base


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    # Create in-memory SQLite database for testing
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    import cablebook.models  # noqa: F401

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import cablebook.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    # Restore original session factory
    db_module.get_session_factory = original_get_session


@pytest.fixture(scope="function")
def sample_project(test_db):
    """Provide a sample project for tests."""
    from cablebook.models import Project
    from cablebook.services.database import session_scope

    with session_scope() as session:
        project = Project(
            project_number="P-2024-017",
            name="Substation North",
            customer="Grid Operator",
        )
        session.add(project)
        session.flush()
        return {"id": project.id, "project_number": project.project_number}


@pytest.fixture(scope="function")
def sample_cable_types(test_db, sample_project):
    """Provide cable types "TypeA" and "NYY 3x2.5" in the sample project."""
    from cablebook.models import CableType
    from cablebook.services.database import session_scope

    with session_scope() as session:
        type_a = CableType(project_id=sample_project["id"], name="TypeA", diameter_mm=12.0)
        nyy = CableType(project_id=sample_project["id"], name="NYY 3x2.5", weight_kg_per_m=0.2)
        session.add_all([type_a, nyy])
        session.flush()
        return {"TypeA": type_a.id, "NYY 3x2.5": nyy.id}


@pytest.fixture(scope="function")
def sample_load_curve(test_db):
    """Provide an empty load curve named "LC-100"."""
    from cablebook.models import MaterialLoadCurve
    from cablebook.services.database import session_scope

    with session_scope() as session:
        curve = MaterialLoadCurve(name="LC-100", description="Ladder tray 100 mm")
        session.add(curve)
        session.flush()
        return {"id": curve.id, "name": curve.name}
