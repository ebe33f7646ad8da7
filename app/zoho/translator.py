from typing import Any, Optional

from app.zoho._schema import ZOHO_ID, EnumRule, MappingSpec, PolymorphicLookup, PortalInput
from app.zoho.lookups import LookupResolver
from app.zoho.models import CrmRecord


class RecordTranslator:
    """
    Translates whole records between the portal and Zoho using a MappingSpec.

    crm_to_portal always returns every key the spec knows about, set to None where Zoho had nothing, as callers
    rely on the keys being there. portal_to_crm only returns the Zoho fields the input actually determines, so an
    update never clears fields it wasn't told about.
    """

    def __init__(self, spec: MappingSpec, resolver: LookupResolver):
        self.spec = spec
        self.resolver = resolver

    @staticmethod
    def _decode_enum(rule: EnumRule, crm_data: dict) -> Any:
        value = crm_data.get(rule.zoho_key)
        return None if value is None else rule.codec.to_portal(value)

    def crm_to_portal(self, record: CrmRecord) -> dict[str, Optional[Any]]:
        data = record.data
        parsed = {ZOHO_ID: record.id}

        for portal_key, zoho_key in self.spec.field_map.items():
            parsed[portal_key] = data.get(zoho_key)

        for portal_key, rule in self.spec.crm_equal.items():
            parsed[portal_key] = self._decode_enum(rule, data)

        for portal_key, rule in self.spec.crm_different.items():
            parsed[portal_key] = self._decode_enum(rule, data)

        for portal_key, rule in self.spec.lookups.items():
            if isinstance(rule, PolymorphicLookup):
                parsed[portal_key] = self.resolver.resolve_polymorphic_to_portal(rule, data)
            else:
                parsed[portal_key] = self.resolver.resolve_to_portal(rule, data.get(rule.zoho_key))
        return parsed

    def portal_to_crm(self, source: PortalInput) -> dict[str, Any]:
        crm_data = {}

        for portal_key, zoho_key in self.spec.field_map.items():
            found, value = source.resolve(portal_key)
            if found:
                crm_data[zoho_key] = value

        for portal_key, rule in (self.spec.crm_equal | self.spec.crm_different).items():
            found, value = source.resolve(portal_key)
            if found:
                crm_data[rule.zoho_key] = rule.codec.to_crm(value)

        for portal_key, rule in self.spec.lookups.items():
            if isinstance(rule, PolymorphicLookup):
                crm_data.update(self.resolver.resolve_polymorphic_to_crm(rule, source))
            else:
                written, value = self.resolver.resolve_to_crm(portal_key, rule, source)
                if written:
                    crm_data[rule.zoho_key] = value
        return crm_data
