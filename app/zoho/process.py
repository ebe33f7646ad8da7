import logging
from datetime import date, datetime
from typing import Any, Optional

import httpx
import logfire
from sqlmodel import SQLModel

from app.core.config import settings
from app.exceptions import CrmRecordRejected, CrmRequestError, MissingExternalIdentifier
from app.zoho._schema import MappingSpec, PortalInput
from app.zoho.api import ZohoAuthError, ZohoClient
from app.zoho.lookups import LookupResolver
from app.zoho.models import EntityResponse
from app.zoho.store import EntityStore
from app.zoho.translator import RecordTranslator

logger = logging.getLogger('portal_sync.zoho')

TERRITORY_FIELD = 'Territory'
WORKFLOW_TRIGGER = 'workflow'


def _clean_for_zoho(data: dict) -> dict:
    """
    Zoho wants real booleans where some older portal code still gives us 'true' and 'false', and dates as iso strings.
    """
    cleaned = {}
    for k, v in data.items():
        if v == 'true':
            v = True
        elif v == 'false':
            v = False
        elif isinstance(v, datetime):
            v = v.isoformat(timespec='seconds')
        elif isinstance(v, date):
            v = v.isoformat()
        cleaned[k] = v
    return cleaned


def build_criteria(field_name: str, value: Any) -> str:
    return f'({field_name}:equals:{value})'


class RecordSyncService:
    """
    Creates, updates and fetches the records of one Zoho module. Each call is independent of the others.
    """

    def __init__(self, spec: MappingSpec, client: ZohoClient, store: EntityStore, territory: Optional[str] = None):
        self.spec = spec
        self.client = client
        self.translator = RecordTranslator(spec, LookupResolver(store))
        self.territory = settings.zoho_territory if territory is None else territory

    @property
    def module(self) -> str:
        return self.spec.module

    @staticmethod
    def _as_input(source: PortalInput | SQLModel | dict) -> PortalInput:
        if isinstance(source, PortalInput):
            return source
        if isinstance(source, dict):
            return PortalInput.from_payload(source)
        return PortalInput.from_entity(source)

    def _triggers(self, with_workflow: bool) -> list[str]:
        return [WORKFLOW_TRIGGER] if with_workflow else []

    def build_record_data(self, source: PortalInput) -> dict:
        data = self.translator.portal_to_crm(source)
        data[TERRITORY_FIELD] = self.territory
        return _clean_for_zoho(data)

    def _check_response(self, responses: list[EntityResponse], operation: str) -> str:
        response = responses[0]
        if response.is_success:
            return response.id
        logger.debug(
            '%s on record %s. For module: %s data: %r', response.message, operation, self.module, response.details
        )
        raise CrmRecordRejected(self.module, operation, response.message, response.details)

    def _request_error(self, e: Exception, operation: str, record_id: Optional[str] = None) -> CrmRequestError:
        err = CrmRequestError(self.module, operation, str(e), record_id=record_id)
        logger.debug(str(err))
        return err

    def create(self, source: PortalInput | SQLModel | dict, with_workflow: bool = False) -> str:
        """
        Creates the record in Zoho and returns its new zoho_id. Saving that id is up to the caller.
        """
        source = self._as_input(source)
        with logfire.span('zoho create {module}', module=self.module):
            try:
                self.client.initialize()
                data = self.build_record_data(source)
                responses = self.client.create_records(self.module, [data], self._triggers(with_workflow))
            except (httpx.HTTPError, ZohoAuthError) as e:
                raise self._request_error(e, 'create') from e
            zoho_id = self._check_response(responses, 'create')
        logger.info('Created %s %s in Zoho', self.module, zoho_id)
        return zoho_id

    def update(self, source: PortalInput | SQLModel | dict, with_workflow: bool = False) -> str:
        source = self._as_input(source)
        zoho_id = source.zoho_id
        if not zoho_id:
            raise MissingExternalIdentifier(self.module)
        with logfire.span('zoho update {module} {zoho_id}', module=self.module, zoho_id=zoho_id):
            try:
                self.client.initialize()
                data = {'id': zoho_id, **self.build_record_data(source)}
                responses = self.client.update_records(self.module, [data], self._triggers(with_workflow))
            except (httpx.HTTPError, ZohoAuthError) as e:
                raise self._request_error(e, 'update', record_id=zoho_id) from e
            zoho_id = self._check_response(responses, 'update') or zoho_id
        logger.info('Updated %s %s in Zoho', self.module, zoho_id)
        return zoho_id

    def push(self, source: PortalInput | SQLModel | dict, with_workflow: bool = False) -> str:
        """
        Updates the record if it's been synced before, otherwise creates it.
        """
        source = self._as_input(source)
        if source.zoho_id:
            return self.update(source, with_workflow=with_workflow)
        return self.create(source, with_workflow=with_workflow)

    def fetch_one(self, zoho_id: str) -> dict:
        with logfire.span('zoho fetch {module} {zoho_id}', module=self.module, zoho_id=zoho_id):
            try:
                self.client.initialize()
                record = self.client.get_record(self.module, zoho_id)
            except (httpx.HTTPError, ZohoAuthError) as e:
                raise self._request_error(e, 'fetch', record_id=zoho_id) from e
            return self.translator.crm_to_portal(record)

    def fetch_all(self) -> list[dict]:
        """
        Gets the first page of records, in whatever order Zoho gives them to us.
        """
        with logfire.span('zoho fetch all {module}', module=self.module):
            try:
                self.client.initialize()
                records = self.client.get_records(self.module, page=1, per_page=settings.zoho_page_size)
            except (httpx.HTTPError, ZohoAuthError) as e:
                raise self._request_error(e, 'all records') from e
            return [self.translator.crm_to_portal(r) for r in records]

    def search(self, parent_field: str, parent_zoho_id: str) -> list[dict]:
        """
        Gets the records linked to a parent record, e.g. all the Contacts whose Account_Name is a given Account.
        """
        criteria = build_criteria(parent_field, parent_zoho_id)
        with logfire.span('zoho search {module} {criteria}', module=self.module, criteria=criteria):
            try:
                self.client.initialize()
                records = self.client.search_records_by_criteria(
                    self.module, criteria, page=1, per_page=settings.zoho_page_size
                )
            except (httpx.HTTPError, ZohoAuthError) as e:
                raise self._request_error(e, 'search records') from e
            return [self.translator.crm_to_portal(r) for r in records]
