"""
ContactImportService Tests - row pipeline, partitioning and the single bulk insert

Repositories are mocked; the leaf services run for real.
"""

from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from repositories.contact_import_repository import ContactImportRepository
from repositories.contact_repository import ContactRepository
from repositories.property_repository import PropertyRepository
from services.contact_import_service import ContactImportService, ImportOutcome
from services.duplicate_detection_service import identity_hash, identity_key
from services.enums import ImportErrorCode, ImportStatus
from services.street_resolution_service import CanonicalStreetIndex

HEADERS = ['Owner 1', 'Owner 2', 'Street Name', 'Street No', 'Own1 Mob', 'Price', 'Last Sold']


def row(owner_1='', owner_2='', street_name='', street_number='', mobile='', price='', last_sold=''):
    return dict(zip(HEADERS, [owner_1, owner_2, street_name, street_number, mobile, price, last_sold]))


@pytest.fixture
def kenmore_index():
    return CanonicalStreetIndex.from_pairs('Kenmore', [('Oak Ave', '10'), ('Oak Ave', '12')])


@pytest.fixture
def mock_contact_repository():
    repository = Mock(spec=ContactRepository)
    repository.bulk_create.side_effect = lambda records: [
        Mock(id=position + 1, **record) for position, record in enumerate(records)
    ]
    repository.get_identity_rows.return_value = []
    return repository


@pytest.fixture
def mock_property_repository():
    return Mock(spec=PropertyRepository)


@pytest.fixture
def mock_contact_import_repository():
    repository = Mock(spec=ContactImportRepository)
    repository.start_import.return_value = Mock(id=42)
    return repository


@pytest.fixture
def service(mock_contact_repository, mock_property_repository, mock_contact_import_repository):
    return ContactImportService(
        contact_repository=mock_contact_repository,
        property_repository=mock_property_repository,
        contact_import_repository=mock_contact_import_repository,
    )


class TestClassifyRows:
    """Test the pure row pipeline"""

    def test_end_to_end_kenmore_scenario(self, service, kenmore_index):
        rows = [
            row(owner_1='Smith', street_name='Oak Ave', street_number='10'),
            row(owner_1='Jones', street_name='Oak', street_number=''),
        ]
        existing = [('smith', '', '10', 'Oak Ave', 'Kenmore')]

        outcome = service.classify_rows(rows, HEADERS, 'Kenmore', kenmore_index, existing)

        assert outcome.accepted_count == 1
        assert outcome.duplicate_count == 1
        assert outcome.unmatched_count == 0
        accepted = outcome.accepted[0]
        assert accepted.owner_1 == 'Jones'
        assert accepted.street_name == 'Oak Ave'
        assert accepted.street_number == '12'
        assert accepted.suburb == 'Kenmore'
        assert outcome.duplicates == ['Smith at 10 Oak Ave']

    def test_rows_without_owners_are_in_no_list(self, service, kenmore_index):
        rows = [
            row(owner_1='NA', street_name='Pine Rd'),
            row(owner_1='  ', owner_2='', street_name='Oak Ave'),
        ]

        outcome = service.classify_rows(rows, HEADERS, 'Kenmore', kenmore_index)

        assert outcome.accepted == []
        assert outcome.duplicates == []
        assert outcome.unmatched_streets == []
        assert outcome.skipped_rows == [0, 1]

    def test_owner_case_differences_are_duplicates_within_file(self, service, kenmore_index):
        rows = [
            row(owner_1='Jane Smith', owner_2='Bob', street_name='Oak Ave', street_number='10'),
            row(owner_1='JANE SMITH', owner_2='bob', street_name='Oak Ave', street_number='10'),
        ]

        outcome = service.classify_rows(rows, HEADERS, 'Kenmore', kenmore_index)

        assert outcome.accepted_count == 1
        assert outcome.duplicates == ['JANE SMITH & bob at 10 Oak Ave']

    def test_unmatched_street_is_accepted_and_reported(self, service):
        index = CanonicalStreetIndex.from_pairs('Kenmore', [('Oak Ave', None)])

        outcome = service.classify_rows(
            [row(owner_1='Jane', street_name='Pine Rd', street_number='4')], HEADERS, 'Kenmore', index
        )

        assert outcome.accepted[0].street_name == 'Oak Ave'
        assert outcome.unmatched_streets == ['Pine Rd']

    def test_blank_street_is_reported_unmatched(self, service, kenmore_index):
        outcome = service.classify_rows(
            [row(owner_1='Jane', street_name='', street_number='10')], HEADERS, 'Kenmore', kenmore_index
        )

        assert outcome.accepted[0].street_name == 'Oak Ave'
        assert outcome.unmatched_streets == ['']

    def test_empty_catalog_drops_rows_as_unmatched(self, service):
        outcome = service.classify_rows(
            [row(owner_1='Jane', street_name='Pine Rd')], HEADERS, 'Nowhere',
            CanonicalStreetIndex(suburb='Nowhere')
        )

        assert outcome.accepted == []
        assert outcome.unmatched_streets == ['Pine Rd']

    def test_row_suburb_column_is_ignored(self, service, kenmore_index):
        headers = HEADERS + ['Suburb']
        rows = [dict(row(owner_1='Jane', street_name='Oak Ave', street_number='10'), Suburb='Elsewhere')]

        outcome = service.classify_rows(rows, headers, 'Kenmore', kenmore_index)

        assert outcome.accepted[0].suburb == 'Kenmore'

    def test_default_status_applied(self, service, kenmore_index):
        outcome = service.classify_rows(
            [row(owner_1='Jane', street_name='Oak Ave')], HEADERS, 'Kenmore', kenmore_index
        )

        assert outcome.accepted[0].status == 'Inprogress'

    def test_strict_parsing_collects_warnings(self, service, kenmore_index):
        rows = [
            row(owner_1='Jane', street_name='Oak Ave', price='ask agent'),
            row(owner_1='Bob', street_name='Oak Ave', last_sold='sometime'),
        ]

        outcome = service.classify_rows(rows, HEADERS, 'Kenmore', kenmore_index, strict_parsing=True)

        assert outcome.accepted_count == 2
        assert [issue.to_dict() for issue in outcome.warnings] == [
            {'row': 0, 'field': 'price', 'value': 'ask agent'},
            {'row': 1, 'field': 'last_sold_date', 'value': 'sometime'},
        ]

    def test_lenient_parsing_has_no_warnings(self, service, kenmore_index):
        outcome = service.classify_rows(
            [row(owner_1='Jane', street_name='Oak Ave', price='ask agent')], HEADERS, 'Kenmore', kenmore_index
        )

        assert outcome.warnings == []
        assert outcome.accepted[0].price is None

    def test_classify_rows_never_touches_repositories(self, service, kenmore_index,
                                                      mock_contact_repository, mock_property_repository):
        service.classify_rows([row(owner_1='Jane', street_name='Oak Ave')], HEADERS, 'Kenmore', kenmore_index)

        mock_contact_repository.bulk_create.assert_not_called()
        mock_contact_repository.get_identity_rows.assert_not_called()
        mock_property_repository.get_street_pairs.assert_not_called()


class TestImportContacts:
    """Test import_contacts results and the ledger write"""

    def test_success_inserts_accepted_contacts_once(self, service, kenmore_index, mock_contact_repository):
        rows = [
            row(owner_1='Jane', street_name='Oak Ave', street_number='10', mobile='0400 111 222',
                price='$650,000', last_sold='15-03-2024'),
            row(owner_1='Bob', street_name='Oak', street_number=''),
        ]

        result = service.import_contacts(rows, HEADERS, 'Kenmore', kenmore_index)

        assert result.is_success
        mock_contact_repository.bulk_create.assert_called_once()
        records = mock_contact_repository.bulk_create.call_args[0][0]
        assert len(records) == 2
        assert records[0]['phone_number'] == '0400 111 222'
        assert records[0]['owner_1_mobile'] is None
        assert records[0]['price'] == Decimal('650000')
        assert records[0]['last_sold_date'].isoformat() == '2024-03-15'
        assert records[0]['identity_hash'] == identity_hash(identity_key('Jane', '', '10', 'Oak Ave', 'Kenmore'))
        assert records[0]['contact_import_id'] == 42
        assert records[1]['street_number'] == '12'

    def test_success_summary_shape(self, service, kenmore_index):
        result = service.import_contacts(
            [row(owner_1='Jane', street_name='Oak Ave', street_number='10')], HEADERS, 'Kenmore', kenmore_index
        )

        summary = result.data.to_summary()
        assert summary == {
            'accepted_count': 1,
            'duplicate_count': 0,
            'unmatched_count': 0,
            'skipped_count': 0,
            'duplicates': [],
            'unmatched_streets': [],
            'warnings': [],
        }
        assert result.metadata == {'contact_import_id': 42}
        assert len(result.data.inserted) == 1

    def test_empty_rows_fail_with_empty_input(self, service, kenmore_index, mock_contact_repository):
        result = service.import_contacts([], HEADERS, 'Kenmore', kenmore_index)

        assert result.is_failure
        assert result.error_code == ImportErrorCode.EMPTY_INPUT.value
        assert result.error == 'No data found in the file'
        mock_contact_repository.bulk_create.assert_not_called()

    def test_blank_suburb_fails(self, service, kenmore_index):
        result = service.import_contacts([row(owner_1='Jane')], HEADERS, '  ', kenmore_index)

        assert result.error_code == ImportErrorCode.INVALID_SUBURB.value

    def test_none_qualifying_reports_counts_and_previews(self, service, kenmore_index, mock_contact_repository):
        rows = [row(owner_1=f'Owner {n}', street_name='Oak Ave', street_number='10') for n in range(7)]
        rows.append(row(owner_1='', street_name='Oak Ave'))
        existing = [(f'owner {n}', '', '10', 'Oak Ave', 'Kenmore') for n in range(7)]

        result = service.import_contacts(rows, HEADERS, 'Kenmore', kenmore_index, existing)

        assert result.is_failure
        assert result.error_code == ImportErrorCode.NONE_QUALIFYING.value
        assert result.error.startswith(
            'No new contacts to import: 7 duplicate(s), 0 unmatched street(s), 1 row(s) without owners.'
        )
        assert 'Owner 0 at 10 Oak Ave' in result.error
        assert '(and 2 more)' in result.error
        assert result.metadata['duplicate_count'] == 7
        assert result.metadata['skipped_count'] == 1
        assert len(result.metadata['duplicates']) == 5
        mock_contact_repository.bulk_create.assert_not_called()

    def test_none_qualifying_with_empty_catalog(self, service):
        result = service.import_contacts(
            [row(owner_1='Jane', street_name='Pine Rd')], HEADERS, 'Nowhere', CanonicalStreetIndex(suburb='Nowhere')
        )

        assert result.error_code == ImportErrorCode.NONE_QUALIFYING.value
        assert 'Unmatched streets: Pine Rd.' in result.error

    def test_ledger_failure_is_reported_and_nothing_kept(self, service, kenmore_index, mock_contact_repository):
        mock_contact_repository.bulk_create.side_effect = IntegrityError('INSERT', {}, Exception('unique'))

        result = service.import_contacts(
            [row(owner_1='Jane', street_name='Oak Ave', street_number='10')], HEADERS, 'Kenmore', kenmore_index
        )

        assert result.is_failure
        assert result.error_code == ImportErrorCode.LEDGER_WRITE_FAILURE.value
        assert 'nothing was imported' in result.error
        assert result.metadata['accepted_count'] == 1

    def test_audit_record_completed(self, service, kenmore_index, mock_contact_import_repository):
        service.import_contacts(
            [row(owner_1='Jane', street_name='Oak Ave', street_number='10')], HEADERS, 'Kenmore', kenmore_index,
            filename='kenmore.csv', imported_by='agent@example.com'
        )

        mock_contact_import_repository.start_import.assert_called_once_with(
            'Kenmore', 'kenmore.csv', 'agent@example.com', 1
        )
        args, kwargs = mock_contact_import_repository.finish_import.call_args
        assert args[0] == 42
        assert args[1] == ImportStatus.COMPLETED
        assert args[2]['accepted_count'] == 1
        assert kwargs['error_code'] is None

    def test_audit_record_failed(self, service, kenmore_index, mock_contact_import_repository):
        service.import_contacts([], HEADERS, 'Kenmore', kenmore_index)

        args, kwargs = mock_contact_import_repository.finish_import.call_args
        assert args[1] == ImportStatus.FAILED
        assert kwargs['error_code'] == ImportErrorCode.EMPTY_INPUT.value

    def test_audit_failure_does_not_change_result(self, service, kenmore_index, mock_contact_import_repository):
        mock_contact_import_repository.start_import.side_effect = SQLAlchemyError('audit table missing')

        result = service.import_contacts(
            [row(owner_1='Jane', street_name='Oak Ave', street_number='10')], HEADERS, 'Kenmore', kenmore_index
        )

        assert result.is_success
        assert result.data.contact_import_id is None
        mock_contact_import_repository.finish_import.assert_not_called()

    def test_works_without_audit_repository(self, mock_contact_repository, mock_property_repository, kenmore_index):
        service = ContactImportService(mock_contact_repository, mock_property_repository)

        result = service.import_contacts(
            [row(owner_1='Jane', street_name='Oak Ave', street_number='10')], HEADERS, 'Kenmore', kenmore_index
        )

        assert result.is_success
        assert service.get_import_history() == []

    def test_structured_audit_event_logged(self, service, kenmore_index):
        with patch('services.contact_import_service.import_audit_logger') as audit_logger:
            service.import_contacts(
                [row(owner_1='Jane', street_name='Oak Ave', street_number='10')], HEADERS, 'Kenmore', kenmore_index
            )

        audit_logger.log_import_completed.assert_called_once()
        assert audit_logger.log_import_completed.call_args[0][0] == 'Kenmore'


class TestImportForSuburb:
    """Test snapshot loading"""

    def test_loads_catalog_and_ledger_once(self, service, mock_contact_repository, mock_property_repository):
        mock_property_repository.get_street_pairs.return_value = [('Oak Ave', '10'), ('Oak Ave', '12')]
        mock_contact_repository.get_identity_rows.return_value = [('Smith', None, '10', 'Oak Ave', 'Kenmore')]
        rows = [
            row(owner_1='Smith', street_name='Oak Ave', street_number='10'),
            row(owner_1='Jones', street_name='Oak', street_number=''),
        ]

        result = service.import_for_suburb(rows, HEADERS, 'Kenmore')

        assert result.is_success
        assert result.data.accepted_count == 1
        assert result.data.duplicate_count == 1
        mock_property_repository.get_street_pairs.assert_called_once_with('Kenmore')
        mock_contact_repository.get_identity_rows.assert_called_once_with('Kenmore')

    def test_empty_rows_skip_reads(self, service, mock_contact_repository, mock_property_repository):
        result = service.import_for_suburb([], HEADERS, 'Kenmore')

        assert result.error_code == ImportErrorCode.EMPTY_INPUT.value
        mock_property_repository.get_street_pairs.assert_not_called()
        mock_contact_repository.get_identity_rows.assert_not_called()

    def test_catalog_read_failure(self, service, mock_property_repository):
        mock_property_repository.get_street_pairs.side_effect = SQLAlchemyError('connection lost')

        result = service.import_for_suburb([row(owner_1='Jane')], HEADERS, 'Kenmore')

        assert result.error_code == ImportErrorCode.CATALOG_READ_FAILURE.value


class TestImportFile:

    def test_unreadable_upload_is_returned_as_is(self, service):
        service.spreadsheet_reader = Mock()
        failure = Mock(is_failure=True)
        service.spreadsheet_reader.read_upload.return_value = failure

        assert service.import_file(Mock(), 'Kenmore') is failure


class TestAddContact:
    """Test single contact entry"""

    @pytest.fixture(autouse=True)
    def catalog(self, mock_property_repository):
        mock_property_repository.get_street_pairs.return_value = [('Oak Ave', '10')]

    def test_adds_contact_on_known_street(self, service, mock_contact_repository):
        result = service.add_contact({'owner_1': 'Jane', 'street_name': 'Oak Ave', 'street_number': '10'}, 'Kenmore')

        assert result.is_success
        record = mock_contact_repository.bulk_create.call_args[0][0][0]
        assert record['suburb'] == 'Kenmore'
        assert record['status'] == 'Inprogress'
        assert record['identity_hash'] == identity_hash(identity_key('Jane', '', '10', 'Oak Ave', 'Kenmore'))

    def test_requires_an_owner(self, service):
        result = service.add_contact({'street_name': 'Oak Ave'}, 'Kenmore')

        assert result.error_code == ImportErrorCode.MISSING_OWNER.value

    def test_street_must_match_exactly(self, service):
        result = service.add_contact({'owner_1': 'Jane', 'street_name': 'Oak'}, 'Kenmore')

        assert result.error_code == ImportErrorCode.STREET_NOT_FOUND.value
        assert result.metadata == {'streets': ['Oak Ave']}

    def test_existing_contact_rejected(self, service, mock_contact_repository):
        mock_contact_repository.get_identity_rows.return_value = [('JANE', None, '10', 'Oak Ave', 'Kenmore')]

        result = service.add_contact({'owner_1': 'jane', 'street_name': 'Oak Ave', 'street_number': '10'}, 'Kenmore')

        assert result.error_code == ImportErrorCode.DUPLICATE_CONTACT.value
        mock_contact_repository.bulk_create.assert_not_called()

    def test_ledger_failure(self, service, mock_contact_repository):
        mock_contact_repository.bulk_create.side_effect = SQLAlchemyError('disk full')

        result = service.add_contact({'owner_1': 'Jane', 'street_name': 'Oak Ave'}, 'Kenmore')

        assert result.error_code == ImportErrorCode.LEDGER_WRITE_FAILURE.value


class TestListContacts:

    def test_requires_suburb(self, service):
        assert service.list_contacts('').error_code == ImportErrorCode.INVALID_SUBURB.value

    def test_delegates_to_repository(self, service, mock_contact_repository):
        mock_contact_repository.find_by_suburb.return_value = ['contact']

        result = service.list_contacts('Kenmore', street_name='Oak Ave')

        assert result.data == ['contact']
        mock_contact_repository.find_by_suburb.assert_called_once_with('Kenmore', street_name='Oak Ave')


class TestImportOutcome:

    def test_counts(self):
        outcome = ImportOutcome(suburb='Kenmore', duplicates=['a'], unmatched_streets=['b', 'c'], skipped_rows=[3])

        assert outcome.counts() == {
            'accepted_count': 0, 'duplicate_count': 1, 'unmatched_count': 2, 'skipped_count': 1,
        }
