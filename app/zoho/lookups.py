import logging
from typing import Any, Optional

from app.zoho._schema import PolymorphicLookup, PortalInput, SingleLookup
from app.zoho.store import EntityStore

logger = logging.getLogger('portal_sync.zoho')


def related_zoho_id(crm_value: Any) -> Optional[str]:
    """
    Zoho sends lookups as {'id': '...', 'name': '...'}, but we also accept a bare id.
    """
    if crm_value is None:
        return None
    if isinstance(crm_value, dict):
        related_id = crm_value.get('id')
        return None if related_id is None else str(related_id)
    return str(crm_value)


class LookupResolver:
    """
    Translates relations between portal ids and Zoho ids. A related record that can't be found is never an error, as
    it may just not have been synced yet.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def _from_relations(self, rule: SingleLookup, local_id: Any, source: PortalInput) -> tuple[bool, Optional[str]]:
        for relation in source.relations:
            if relation.model is rule.model and relation.id == local_id:
                return True, relation.zoho_id
        return False, None

    def local_to_zoho_id(self, rule: SingleLookup, local_id: Any, source: PortalInput) -> Any:
        if rule.model is None:
            return local_id
        if local_id is None:
            return None
        found, zoho_id = self._from_relations(rule, local_id, source)
        if found:
            return zoho_id
        related_obj = self.store.find_by_id(rule.model, local_id)
        if related_obj is None:
            logger.debug('%s %s not found, sending %s as empty', rule.model.__name__, local_id, rule.zoho_key)
            return None
        return related_obj.zoho_id

    def resolve_to_crm(self, portal_key: str, rule: SingleLookup, source: PortalInput) -> tuple[bool, Any]:
        """
        Returns (written, value). If the input doesn't mention `portal_key` at all we don't write the field, so an
        update doesn't clear relations it knows nothing about.
        """
        found, local_id = source.resolve(portal_key)
        if not found:
            return False, None
        return True, self.local_to_zoho_id(rule, local_id, source)

    def resolve_polymorphic_to_crm(self, rule: PolymorphicLookup, source: PortalInput) -> dict[str, Any]:
        """
        Only the alternatives that actually have a value are written, it's meaningless to clear the others.
        """
        data = {}
        for alt in rule.alternatives:
            found, local_id = source.resolve(alt.portal_key)
            if found and local_id is not None:
                single = SingleLookup(zoho_key=alt.zoho_key, model=alt.model)
                data[alt.zoho_key] = self.local_to_zoho_id(single, local_id, source)
        return data

    def resolve_to_portal(self, rule: SingleLookup, crm_value: Any) -> Any:
        """
        Returns the id of the portal record linked to the Zoho record. If we don't have it we return the Zoho id
        instead so the link isn't lost.
        """
        zoho_id = related_zoho_id(crm_value)
        if zoho_id is None:
            return None
        if rule.model is None:
            return zoho_id
        related_obj = self.store.find_by_external_id(rule.model, zoho_id)
        if related_obj is None:
            return zoho_id
        return related_obj.id

    def resolve_polymorphic_to_portal(self, rule: PolymorphicLookup, crm_data: dict) -> Any:
        """
        Goes through every alternative in order; the last one that's set wins.
        """
        value = None
        for alt in rule.alternatives:
            crm_value = crm_data.get(alt.zoho_key)
            if related_zoho_id(crm_value) is not None:
                value = self.resolve_to_portal(SingleLookup(zoho_key=alt.zoho_key, model=alt.model), crm_value)
        return value
