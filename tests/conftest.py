# tests/conftest.py
"""
This file contains shared fixtures for the pytest test suite.
Fixtures defined here are automatically available to all tests.

The app fixture runs against an in-memory SQLite database. Every test that
uses db_session starts from the seeded property catalog and an empty
contact ledger; rows written during the test are deleted afterwards, so
repositories can commit and roll back for real.
"""
import os

import pytest

from app import create_app
from extensions import db
from crm_database import Contact, ContactImport, Property

# Property catalog seeded for every test: suburb -> [(street_name, street_number)]
CATALOG = {
    'Kenmore': [
        ('Oak Ave', '10'),
        ('Oak Ave', '12'),
    ],
    'Ashgrove': [
        ('Main Street', '1'),
        ('Main Street', '3'),
        ('Main Street', '5'),
        ('Elm Road', '2'),
        ('Elm Road', None),
    ],
}


def create_test_contact(**kwargs):
    """
    Helper function to create test contacts with default values.
    Used across multiple test files.
    """
    defaults = {
        'owner_1': 'Test Owner',
        'street_number': '10',
        'street_name': 'Oak Ave',
        'suburb': 'Kenmore',
        'status': 'Inprogress',
    }
    defaults.update(kwargs)
    return Contact(**defaults)


def seed_catalog(session):
    for suburb, pairs in CATALOG.items():
        for street_name, street_number in pairs:
            session.add(Property(suburb=suburb, street_name=street_name, street_number=street_number))
    session.commit()


@pytest.fixture(scope='module')
def app():
    """
    A fixture that creates a new Flask application instance for a test module.
    """
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app(config_name='testing', test_config={
        'SERVER_NAME': 'localhost.localdomain'  # Required for url_for in tests
    })

    with app.app_context():
        db.create_all()
        seed_catalog(db.session)

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='module')
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """
    The application's session with the ledger emptied after each test.

    The property catalog is left as seeded; tests adding catalog rows must
    use suburbs of their own.
    """
    with app.app_context():
        yield db.session

        db.session.rollback()
        db.session.query(Contact).delete()
        db.session.query(ContactImport).delete()
        db.session.query(Property).filter(~Property.suburb.in_(list(CATALOG))).delete(synchronize_session=False)
        db.session.commit()
