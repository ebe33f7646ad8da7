"""
Tests for translating whole records between the portal and Zoho.
"""

from datetime import date

import pytest

from app.exceptions import UnknownEnumValue
from app.main_app.models import Account, Contact, Deal, Task
from app.zoho._schema import EnumRule, MappingSpec, PortalInput, PreloadedRelation
from app.zoho.enums import EqualCodec
from app.zoho.field_mappings import ACCOUNT_SPEC, CONTACT_SPEC, DEAL_SPEC, MAPPING_SPECS, TASK_SPEC
from app.zoho.lookups import LookupResolver
from app.zoho.models import CrmRecord
from app.zoho.translator import RecordTranslator
from tests.factories import AccountFactory, DealFactory


@pytest.fixture
def translator(store):
    def _translator(spec: MappingSpec) -> RecordTranslator:
        return RecordTranslator(spec, LookupResolver(store))

    return _translator


class TestCrmToPortal:
    @pytest.mark.parametrize('entity', list(MAPPING_SPECS))
    def test_empty_record_has_every_key(self, translator, entity):
        spec = MAPPING_SPECS[entity]
        parsed = translator(spec).crm_to_portal(CrmRecord(id='123'))
        assert list(parsed) == spec.portal_keys
        assert parsed.pop('zoho_id') == '123'
        assert all(v is None for v in parsed.values())

    def test_equal_enum_code(self, translator):
        spec = MappingSpec(
            module='Accounts',
            model=Account,
            crm_equal={'status': EnumRule(zoho_key='status', codec=EqualCodec('Status', {1: 'inactive', 2: 'active'}))},
        )
        parsed = translator(spec).crm_to_portal(CrmRecord(id='1', data={'status': 2}))
        assert parsed == {'zoho_id': '1', 'status': 'active'}

    def test_account(self, translator):
        record = CrmRecord.model_validate(
            {
                'id': 4150868000000001001,
                'Account_Name': 'Acme',
                'Website': 'https://acme.com',
                'Phone': '0208 123 4567',
                'Billing_Country': 'GB',
                'Employees': 25,
                'Partner': True,
                'Account_Status': 'Active',
                'Owner': {'id': '4150868000000225013', 'name': 'Sam Sales', 'email': 'sam@example.com'},
                'Created_Time': '2024-01-01T10:00:00+00:00',
            }
        )
        assert translator(ACCOUNT_SPEC).crm_to_portal(record) == {
            'zoho_id': '4150868000000001001',
            'name': 'Acme',
            'website': 'https://acme.com',
            'phone': '0208 123 4567',
            'billing_country': 'GB',
            'employee_count': 25,
            'is_partner': True,
            'status': 'active',
            'owner_zoho_id': '4150868000000225013',
        }

    def test_different_enum(self, translator):
        parsed = translator(CONTACT_SPEC).crm_to_portal(
            CrmRecord(id='1', data={'Last_Name': 'Doe', 'Lead_Source': 'Web Download'})
        )
        assert parsed['lead_source'] == 'web'

    def test_null_enum(self, translator):
        parsed = translator(DEAL_SPEC).crm_to_portal(CrmRecord(id='1', data={'Stage': None}))
        assert parsed['stage'] is None

    def test_unknown_enum(self, translator):
        with pytest.raises(UnknownEnumValue):
            translator(DEAL_SPEC).crm_to_portal(CrmRecord(id='1', data={'Stage': 'Lost in space'}))

    def test_lookup_found(self, translator, test_account):
        parsed = translator(CONTACT_SPEC).crm_to_portal(
            CrmRecord(id='1', data={'Account_Name': {'id': test_account.zoho_id, 'name': 'Acme'}})
        )
        assert parsed['account_id'] == test_account.id

    def test_lookup_not_synced_keeps_zoho_id(self, translator, test_account):
        parsed = translator(CONTACT_SPEC).crm_to_portal(
            CrmRecord(id='1', data={'Account_Name': {'id': '999', 'name': 'Unknown'}})
        )
        assert parsed['account_id'] == '999'

    def test_lookup_empty(self, translator):
        parsed = translator(CONTACT_SPEC).crm_to_portal(CrmRecord(id='1', data={'Account_Name': None}))
        assert parsed['account_id'] is None

    def test_polymorphic_last_wins(self, translator, db, test_deal, test_account):
        data = {
            'Related_Account': {'id': test_account.zoho_id, 'name': 'Acme'},
            'Related_Deal': {'id': test_deal.zoho_id, 'name': 'Big deal'},
        }
        parsed = translator(TASK_SPEC).crm_to_portal(CrmRecord(id='1', data=data))
        assert parsed['related_to'] == test_deal.id

    def test_polymorphic_one_set(self, translator, test_account):
        data = {'Related_Account': {'id': test_account.zoho_id}, 'Related_Deal': None}
        parsed = translator(TASK_SPEC).crm_to_portal(CrmRecord(id='1', data=data))
        assert parsed['related_to'] == test_account.id

    def test_polymorphic_not_synced(self, translator, db):
        parsed = translator(TASK_SPEC).crm_to_portal(CrmRecord(id='1', data={'Related_Deal': {'id': '777'}}))
        assert parsed['related_to'] == '777'


class TestPortalToCrm:
    def test_payload_null_clears_field(self, translator):
        data = translator(ACCOUNT_SPEC).portal_to_crm(PortalInput.from_payload({'name': None}))
        assert data == {'Account_Name': None}

    def test_null_clears_simple_field(self, translator):
        spec = MappingSpec(module='Accounts', model=Account, field_map={'name': 'Name', 'website': 'Website'})
        assert translator(spec).portal_to_crm(PortalInput.from_payload({'name': None})) == {'Name': None}

    def test_payload_only_sends_given_fields(self, translator):
        data = translator(ACCOUNT_SPEC).portal_to_crm(PortalInput.from_payload({'website': 'https://acme.com'}))
        assert data == {'Website': 'https://acme.com'}

    def test_enum_null_clears_field(self, translator):
        data = translator(ACCOUNT_SPEC).portal_to_crm(PortalInput.from_payload({'status': None}))
        assert data == {'Account_Status': None}

    def test_enums_encoded(self, translator):
        data = translator(DEAL_SPEC).portal_to_crm(PortalInput.from_payload({'stage': 'won', 'lead_source': 'event'}))
        assert data == {'Stage': 'Closed Won', 'Lead_Source': 'Trade Show'}

    def test_unknown_enum(self, translator):
        with pytest.raises(UnknownEnumValue):
            translator(DEAL_SPEC).portal_to_crm(PortalInput.from_payload({'stage': 'maybe'}))

    def test_secondary_data(self, translator):
        payload = {'name': None, 'data': {'name': 'From data', 'status': 'churned', 'phone': None}}
        data = translator(ACCOUNT_SPEC).portal_to_crm(PortalInput.from_payload(payload))
        assert data == {'Account_Name': 'From data', 'Account_Status': 'Churned', 'Phone': None}

    def test_direct_value_beats_secondary(self, translator):
        payload = {'name': 'Direct', 'data': {'name': 'From data'}}
        data = translator(ACCOUNT_SPEC).portal_to_crm(PortalInput.from_payload(payload))
        assert data == {'Account_Name': 'Direct'}

    def test_explicit_secondary(self, translator):
        source = PortalInput.from_payload({'name': 'Direct'}, secondary={'website': 'https://acme.com'})
        data = translator(ACCOUNT_SPEC).portal_to_crm(source)
        assert data == {'Account_Name': 'Direct', 'Website': 'https://acme.com'}

    def test_entity_skips_empty_fields(self, translator, db, test_account, test_contact):
        deal = DealFactory.create_with_db(
            db,
            name='Big deal',
            amount=1500.5,
            closing_date=date(2024, 6, 30),
            stage='negotiation',
            account_id=test_account.id,
        )
        data = translator(DEAL_SPEC).portal_to_crm(PortalInput.from_entity(deal))
        assert data == {
            'Deal_Name': 'Big deal',
            'Amount': 1500.5,
            'Closing_Date': date(2024, 6, 30),
            'Stage': 'Negotiation/Review',
            'Account_Name': test_account.zoho_id,
        }

    def test_lookup_by_local_id(self, translator, test_account):
        data = translator(CONTACT_SPEC).portal_to_crm(
            PortalInput.from_payload({'last_name': 'Doe', 'account_id': test_account.id})
        )
        assert data == {'Last_Name': 'Doe', 'Account_Name': test_account.zoho_id}

    def test_lookup_direct_beats_secondary(self, translator, db, test_account):
        other = AccountFactory.create_with_db(db, zoho_id='4150868000000001999')
        payload = {'account_id': test_account.id, 'data': {'account_id': other.id}}
        data = translator(CONTACT_SPEC).portal_to_crm(PortalInput.from_payload(payload))
        assert data == {'Account_Name': test_account.zoho_id}

    def test_lookup_from_secondary(self, translator, test_account):
        payload = {'account_id': None, 'data': {'account_id': test_account.id}}
        data = translator(CONTACT_SPEC).portal_to_crm(PortalInput.from_payload(payload))
        assert data == {'Account_Name': test_account.zoho_id}

    def test_lookup_absent_not_written(self, translator, test_account):
        data = translator(CONTACT_SPEC).portal_to_crm(PortalInput.from_payload({'last_name': 'Doe'}))
        assert 'Account_Name' not in data

    def test_lookup_explicit_null_clears(self, translator):
        data = translator(CONTACT_SPEC).portal_to_crm(PortalInput.from_payload({'account_id': None}))
        assert data == {'Account_Name': None}

    def test_lookup_not_found(self, translator, db):
        data = translator(CONTACT_SPEC).portal_to_crm(PortalInput.from_payload({'account_id': 12345}))
        assert data == {'Account_Name': None}

    def test_lookup_not_synced(self, translator, db):
        account = AccountFactory.create_with_db(db)
        data = translator(CONTACT_SPEC).portal_to_crm(PortalInput.from_payload({'account_id': account.id}))
        assert data == {'Account_Name': None}

    def test_lookup_preloaded_relation(self, translator, db):
        contact = Contact(id=1, last_name='Doe', account_id=999)
        source = PortalInput.from_entity(contact, relations=[PreloadedRelation(Account, 999, 'preloaded-zoho-id')])
        data = translator(CONTACT_SPEC).portal_to_crm(source)
        assert data['Account_Name'] == 'preloaded-zoho-id'

    def test_lookup_preloaded_relation_from_obj(self, translator, db):
        account = Account(id=5, name='Acme', zoho_id='from-obj')
        source = PortalInput.from_entity(Contact(last_name='Doe', account_id=5), relations=[account])
        assert translator(CONTACT_SPEC).portal_to_crm(source)['Account_Name'] == 'from-obj'

    def test_lookup_preloaded_relation_wrong_type(self, translator, db):
        contact = Contact(id=1, last_name='Doe', account_id=999)
        source = PortalInput.from_entity(contact, relations=[PreloadedRelation(Deal, 999, 'deal-zoho-id')])
        data = translator(CONTACT_SPEC).portal_to_crm(source)
        assert data['Account_Name'] is None

    def test_passthrough_lookup(self, translator, db):
        account = Account(name='Acme', owner_zoho_id='4150868000000225013')
        data = translator(ACCOUNT_SPEC).portal_to_crm(PortalInput.from_entity(account))
        assert data == {'Account_Name': 'Acme', 'Owner': '4150868000000225013'}

    def test_polymorphic_one_alternative(self, translator, test_account):
        data = translator(TASK_SPEC).portal_to_crm(
            PortalInput.from_payload({'subject': 'Call', 'account_id': test_account.id, 'deal_id': None})
        )
        assert data == {'Subject': 'Call', 'Related_Account': test_account.zoho_id}

    def test_polymorphic_none_set(self, translator, db):
        data = translator(TASK_SPEC).portal_to_crm(PortalInput.from_payload({'subject': 'Call'}))
        assert data == {'Subject': 'Call'}

    def test_polymorphic_entity(self, translator, db, test_deal):
        task = Task(subject='Call', status='in_progress', deal_id=test_deal.id)
        data = translator(TASK_SPEC).portal_to_crm(PortalInput.from_entity(task))
        assert data == {'Subject': 'Call', 'Status': 'In Progress', 'Related_Deal': test_deal.zoho_id}


class TestRoundTrip:
    def test_fields_round_trip(self, translator):
        fields = {
            'Account_Name': 'Acme',
            'Website': 'https://acme.com',
            'Phone': '0208 123 4567',
            'Billing_Country': 'GB',
            'Employees': 25,
            'Partner': False,
        }
        account_translator = translator(ACCOUNT_SPEC)
        parsed = account_translator.crm_to_portal(CrmRecord(id='1', data=fields))
        data = account_translator.portal_to_crm(PortalInput.from_payload(parsed))
        assert {k: data[k] for k in ACCOUNT_SPEC.field_map.values()} == fields

    def test_lookup_round_trip(self, translator, test_account):
        contact_translator = translator(CONTACT_SPEC)
        record = CrmRecord(id='1', data={'Last_Name': 'Doe', 'Account_Name': {'id': test_account.zoho_id}})
        data = contact_translator.portal_to_crm(PortalInput.from_payload(contact_translator.crm_to_portal(record)))
        assert data['Account_Name'] == test_account.zoho_id
