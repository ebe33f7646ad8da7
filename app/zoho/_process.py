import logging

from sqlmodel import SQLModel

from app.core.database import DBSession
from app.zoho._schema import MappingSpec, SingleLookup
from app.zoho.process import RecordSyncService
from app.zoho.store import SQLModelEntityStore

logger = logging.getLogger('portal_sync.zoho')


def _model_values(spec: MappingSpec, parsed: dict) -> dict:
    """
    Picks the values from a parsed Zoho record that can be saved on the portal model. Related records we don't have
    yet come back as their Zoho id, which we can't store in a foreign key, so those are dropped.
    """
    columns = set(spec.model.model_fields) - {'id'}
    values = {k: v for k, v in parsed.items() if k in columns}
    for portal_key, rule in spec.lookups.items():
        if isinstance(rule, SingleLookup) and rule.model is not None and isinstance(values.get(portal_key), str):
            values.pop(portal_key)
    return values


def push_and_save(service: RecordSyncService, db: DBSession, obj: SQLModel, with_workflow: bool = False) -> bool:
    """
    Sends a portal record to Zoho and saves the zoho_id on it. Returns whether the record was created in Zoho.
    """
    created = not obj.zoho_id
    zoho_id = service.push(obj, with_workflow=with_workflow)
    if obj.zoho_id != zoho_id:
        obj.zoho_id = zoho_id
        db.add(obj)
        db.commit()
    logger.info('Pushed %s %s to Zoho %s:%s', type(obj).__name__, obj.id, service.module, zoho_id)
    return created


def pull_and_save(service: RecordSyncService, db: DBSession, zoho_id: str) -> tuple[SQLModel, bool]:
    """
    Gets a record from Zoho and saves it on the matching portal record, creating one if we don't have it yet.
    Raises pydantic's ValidationError if the Zoho record can't be saved as a portal record.
    """
    spec = service.spec
    values = _model_values(spec, service.fetch_one(zoho_id))
    obj = SQLModelEntityStore(db).find_by_external_id(spec.model, zoho_id)
    if obj:
        validated = spec.model.model_validate({**obj.model_dump(), **values})
        obj.sqlmodel_update(validated.model_dump(exclude={'id'}))
        created = False
    else:
        obj = spec.model.model_validate(values)
        created = True
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info(
        '%s %s:%s from Zoho %s:%s',
        'Created' if created else 'Updated',
        spec.model.__name__,
        obj.id,
        spec.module,
        zoho_id,
    )
    return obj, created
