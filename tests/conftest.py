# tests/conftest.py
"""
Shared fixtures for the pytest test suite.
Fixtures defined here are automatically available to all tests.

TEST ISOLATION:
- Each test runs inside a connection-level transaction that is rolled back
- On SQLite, commit() is replaced by flush() so committed rows stay in that transaction
- The service registry is cleared before each test and handed the test session
"""
import os

import pytest

from app import create_app
from extensions import db
from crm_database import Owner, Contact, Property, Coordinate, PropertyNote


def create_test_owner(**kwargs):
    """
    Helper function to build test owners with default values.
    Used across multiple test files.
    """
    defaults = {
        'first_name': 'John',
        'last_name': 'Smith',
        'full_name': 'John Smith',
    }
    defaults.update(kwargs)
    return Owner(**defaults)


def create_test_property(**kwargs):
    """Helper function to build test properties with default values."""
    defaults = {
        'street_address': '123 Main Street',
        'city': 'Springfield',
        'zip_code': 12345,
        'state': 'IL',
    }
    defaults.update(kwargs)
    return Property(**defaults)


@pytest.fixture(scope='module')
def app():
    """
    A fixture that creates a new Flask application instance for a test module.
    Tables are created once per module and dropped afterwards.
    """
    # Ensure testing environment is set for proper session handling
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app(config_name='testing', test_config={
        'SERVER_NAME': 'localhost.localdomain'  # Required for url_for in tests
    })

    with app.app_context():
        db.create_all()

        yield app

        # --- Teardown ---
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='module')
def client(app):
    """
    A fixture that provides a test client for the Flask application.
    It depends on the 'app' fixture.
    """
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """
    A fixture that provides a clean database session for each test function.
    Changes are rolled back at the end of the test.
    """
    with app.app_context():
        connection = db.engine.connect()
        transaction = connection.begin()

        from sqlalchemy.orm import scoped_session, sessionmaker

        session = scoped_session(sessionmaker(bind=connection))

        # Save the original session to restore later
        old_session = db.session

        if 'sqlite' in str(db.engine.url):
            # A real commit would end the outer transaction; keep "committed"
            # rows in it by flushing instead
            def fake_commit():
                session.flush()

            session.commit = fake_commit

        db.session = session

        try:
            yield session
        finally:
            session.remove()
            if transaction.is_active:
                transaction.rollback()
            connection.close()

            # Restore the original session
            db.session = old_session


@pytest.fixture(autouse=True)
def ensure_test_session_in_services(app, db_session):
    """
    Ensure the service registry uses the test database session.

    Every cached instance is dropped so repositories and the services built
    on them are recreated with the test session.
    """
    from services.service_registry_enhanced import ServiceLifecycle

    app.services.clear_all_instances()
    app.services.register_factory(
        'db_session',
        lambda: db_session,
        lifecycle=ServiceLifecycle.SCOPED
    )
    app.services.clear_dependency_chain('db_session')

    yield

    app.services.clear_all_instances()


@pytest.fixture
def owner(db_session):
    """A persisted owner with one cell phone contact"""
    owner = create_test_owner()
    db_session.add(owner)
    db_session.flush()
    db_session.add(Contact(owner_id=owner.id, phone='5551234567', type='Cell', label='primary', priority=1))
    db_session.flush()
    return owner


@pytest.fixture
def property_record(db_session, owner):
    """A persisted property owned by the owner fixture"""
    prop = create_test_property()
    prop.owners.append(owner)
    db_session.add(prop)
    db_session.flush()
    return prop


@pytest.fixture
def geocoded_property(db_session):
    """A persisted property that already has coordinates"""
    prop = create_test_property(street_address='9 Elm Court', zip_code=12346)
    db_session.add(prop)
    db_session.flush()
    db_session.add(Coordinate(property_id=prop.id, latitude=39.78, longitude=-89.65, confidence='high'))
    db_session.flush()
    return prop


@pytest.fixture
def property_note(db_session, property_record):
    note = PropertyNote(property_id=property_record.id, content='Roof replaced in 2019')
    db_session.add(note)
    db_session.flush()
    return note
