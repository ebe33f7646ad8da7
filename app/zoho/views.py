import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header
from pydantic import ValidationError

from app.common.api.errors import HTTP400, HTTP403, HTTP404, HTTP502
from app.common.utils import get_bearer
from app.core.config import settings
from app.core.database import DBSession, get_db
from app.exceptions import CrmRecordRejected, CrmRequestError, MissingExternalIdentifier, UnknownEnumValue
from app.zoho._process import pull_and_save, push_and_save
from app.zoho._schema import ZOHO_ID, MappingSpec, PortalInput
from app.zoho.api import ZohoClient, get_zoho_client
from app.zoho.field_mappings import MAPPING_SPECS
from app.zoho.process import RecordSyncService
from app.zoho.store import SQLModelEntityStore

logger = logging.getLogger('portal_sync.zoho')


def check_api_key(authorization: Optional[str] = Header(None)):
    if get_bearer(authorization) != settings.api_key:
        raise HTTP403('Invalid API key')


router = APIRouter(prefix='/zoho', tags=['zoho'], dependencies=[Depends(check_api_key)])


def get_spec(entity: str) -> MappingSpec:
    try:
        return MAPPING_SPECS[entity]
    except KeyError:
        raise HTTP404(f'Unknown entity {entity}')


def get_service(
    spec: MappingSpec = Depends(get_spec),
    client: ZohoClient = Depends(get_zoho_client),
    db: DBSession = Depends(get_db),
) -> RecordSyncService:
    return RecordSyncService(spec, client, SQLModelEntityStore(db))


@contextmanager
def handle_sync_errors():
    try:
        yield
    except (UnknownEnumValue, MissingExternalIdentifier, CrmRecordRejected) as e:
        raise HTTP400(str(e))
    except CrmRequestError as e:
        logger.error('Error talking to Zoho: %s', e)
        raise HTTP502(str(e))


@router.get('/{entity}/records/', name='zoho-records')
def list_records(service: RecordSyncService = Depends(get_service)):
    with handle_sync_errors():
        return service.fetch_all()


@router.get('/{entity}/records/{zoho_id}/', name='zoho-record')
def get_record(zoho_id: str, service: RecordSyncService = Depends(get_service)):
    with handle_sync_errors():
        return service.fetch_one(zoho_id)


@router.patch('/{entity}/records/{zoho_id}/', name='zoho-record-update')
def update_record(
    zoho_id: str,
    payload: dict = Body(...),
    workflow: bool = False,
    service: RecordSyncService = Depends(get_service),
):
    """
    Partially updates a Zoho record. Only the fields in the payload (or its `data` dict) are sent, a field set to null
    is cleared in Zoho.
    """
    with handle_sync_errors():
        zoho_id = service.update(PortalInput.from_payload({**payload, ZOHO_ID: zoho_id}), with_workflow=workflow)
    return {'zoho_id': zoho_id}


@router.get('/{entity}/search/', name='zoho-search')
def search_records(parent_field: str, parent_id: str, service: RecordSyncService = Depends(get_service)):
    with handle_sync_errors():
        return service.search(parent_field, parent_id)


@router.post('/{entity}/{local_id}/push/', name='zoho-push')
def push_record(
    local_id: int,
    workflow: bool = False,
    spec: MappingSpec = Depends(get_spec),
    service: RecordSyncService = Depends(get_service),
    db: DBSession = Depends(get_db),
):
    """
    Sends a portal record to Zoho, creating it there if it's never been synced. The zoho_id is then saved on the record.
    """
    obj = db.get(spec.model, local_id)
    if not obj:
        raise HTTP404(f'{spec.model.__name__} {local_id} not found')

    with handle_sync_errors():
        created = push_and_save(service, db, obj, with_workflow=workflow)
    return {'id': obj.id, 'zoho_id': obj.zoho_id, 'created': created}


@router.post('/{entity}/pull/{zoho_id}/', name='zoho-pull')
def pull_record(zoho_id: str, service: RecordSyncService = Depends(get_service), db: DBSession = Depends(get_db)):
    """
    Gets a record from Zoho and saves it on the matching portal record, creating one if we don't have it yet.
    """
    try:
        with handle_sync_errors():
            obj, created = pull_and_save(service, db, zoho_id)
    except ValidationError as e:
        raise HTTP400(f'Invalid {service.module} record {zoho_id}: {e}')
    return {'id': obj.id, 'zoho_id': zoho_id, 'created': created}
