"""
PropertyRepository Tests - catalog reads backing the canonical street index
"""

import pytest

from repositories.property_repository import PropertyRepository


@pytest.fixture
def repository(db_session):
    return PropertyRepository(db_session)


class TestPropertyRepository:

    def test_get_street_pairs_distinct_and_ordered(self, repository):
        repository.create(suburb='Testville', street_name='Zeta St', street_number='2')
        repository.create(suburb='Testville', street_name='Alpha Rd', street_number='9')
        repository.create(suburb='Testville', street_name='Alpha Rd', street_number='11')
        repository.create(suburb='Testville', street_name='Alpha Rd', street_number='9')

        pairs = repository.get_street_pairs('Testville')

        # numbers are text, so '11' sorts before '9'
        assert pairs == [('Alpha Rd', '11'), ('Alpha Rd', '9'), ('Zeta St', '2')]

    def test_get_street_pairs_unknown_suburb(self, repository):
        assert repository.get_street_pairs('Nowhere') == []

    def test_get_street_pairs_from_seeded_catalog(self, repository):
        assert repository.get_street_pairs('Kenmore') == [('Oak Ave', '10'), ('Oak Ave', '12')]

    def test_get_street_names(self, repository):
        assert repository.get_street_names('Ashgrove') == ['Elm Road', 'Main Street']

    def test_create_requires_suburb_and_street(self, repository):
        with pytest.raises(ValueError):
            repository.create(suburb='', street_name='Oak Ave')
        with pytest.raises(ValueError):
            repository.create(suburb='Testville', street_name=None)
