"""
Pytest fixtures for glassworks backend tests.

Provides test database setup, tenant fixtures, a seeded catalog, the
in-memory repository fake and the test client.
"""

from decimal import Decimal

import pytest
from glassworks import create_app
from glassworks.config import TestConfig
from glassworks.extensions import db
from glassworks.models import Organization, GlassRate, ProcessDefinition

from fakes import InMemoryRepository, ORG


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Sharma Glass", code="SGH", is_active=True, state_code="MH")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Patel Glazing", code="PGZ", is_active=True, state_code="GJ")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def catalog_a(db_session, org_a):
    """Clear Float rates and the BP / TMP / EDG / HOLE processes for Org A."""
    db_session.add(GlassRate(
        org_id=org_a.id,
        glass_type="Clear Float",
        rate_5mm=Decimal("42.00"),
        rate_8mm=Decimal("62.00"),
        rate_dgu=Decimal("180.00"),
        custom_rates={"15mm": "120.00"},
    ))
    db_session.add_all([
        ProcessDefinition(org_id=org_a.id, code="BP", name="Back Painted", pricing_type="A", rate=Decimal("45.00")),
        ProcessDefinition(org_id=org_a.id, code="TMP", name="Toughened", pricing_type="A", rate=Decimal("85.00")),
        ProcessDefinition(org_id=org_a.id, code="EDG", name="Edging", pricing_type="L", rate=Decimal("12.00")),
        ProcessDefinition(org_id=org_a.id, code="HOLE", name="Hole Drilling", pricing_type="F", rate=Decimal("50.00")),
    ])
    db_session.commit()
    return org_a


@pytest.fixture(scope='function')
def memory_repo():
    """In-memory repository with the Scenario A catalog for org 7."""
    repo = InMemoryRepository()
    repo.add_glass_rate(ORG, "Clear Float", rate_5mm="42.00", rate_dgu="180.00", custom_rates={"15mm": "120.00"})
    repo.add_glass_rate(ORG, "Tinted", rate_5mm="0.00")
    repo.add_process(ORG, "BP", "Back Painted", "A", "45.00")
    repo.add_process(ORG, "TMP", "Toughened", "A", "85.00")
    repo.add_process(ORG, "EDG", "Edging", "L", "12.00")
    repo.add_process(ORG, "HOLE", "Hole Drilling", "F", "50.00")
    repo.add_process(ORG, "OLD", "Retired", "F", "10.00", is_active=False)
    return repo

