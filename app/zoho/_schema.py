from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlmodel import SQLModel

from app.zoho.enums import DifferentCodec, EqualCodec

ZOHO_ID = 'zoho_id'
SECONDARY_DATA_KEY = 'data'


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class EnumRule(_FrozenModel):
    zoho_key: str
    codec: EqualCodec | DifferentCodec


class SingleLookup(_FrozenModel):
    """
    A relation to one other synced model. If `model` is None the value is passed through untouched, this is used for
    things like Zoho users which we don't store.
    """

    zoho_key: str
    model: Optional[type[SQLModel]] = None


class PolymorphicAlternative(_FrozenModel):
    portal_key: str
    zoho_key: str
    model: type[SQLModel]


class PolymorphicLookup(_FrozenModel):
    """
    A relation that can point to one of several models. Each alternative has its own field on both sides, though only
    one is expected to be set on any record. Coming back from Zoho they all share the one portal key.
    """

    alternatives: tuple[PolymorphicAlternative, ...]

    @model_validator(mode='after')
    def check_alternatives(self) -> 'PolymorphicLookup':
        if not self.alternatives:
            raise ValueError('A polymorphic lookup needs at least one alternative')
        return self


LookupRule = Union[SingleLookup, PolymorphicLookup]


class MappingSpec(_FrozenModel):
    """
    Everything we need to know to translate one portal model to and from a Zoho module.

    field_map: portal field -> Zoho field, copied as is
    crm_equal: portal field -> rule, for enums with the same choices on both sides
    crm_different: portal field -> rule, for enums that need real translation
    lookups: portal field -> rule, for relations to other synced records
    """

    module: str
    model: type[SQLModel]
    field_map: dict[str, str] = Field(default_factory=dict)
    crm_equal: dict[str, EnumRule] = Field(default_factory=dict)
    crm_different: dict[str, EnumRule] = Field(default_factory=dict)
    lookups: dict[str, LookupRule] = Field(default_factory=dict)

    @model_validator(mode='after')
    def check_keys_unique(self) -> 'MappingSpec':
        if len(set(self.field_map.values())) != len(self.field_map):
            raise ValueError(f'{self.module}: Zoho field names in field_map must be unique')
        overlap = set(self.crm_equal) & set(self.crm_different)
        if overlap:
            raise ValueError(f'{self.module}: enum fields {sorted(overlap)} are in both crm_equal and crm_different')
        return self

    @property
    def portal_keys(self) -> list[str]:
        """Every key crm_to_portal will write, in the order they are written"""
        keys = [ZOHO_ID, *self.field_map, *self.crm_equal, *self.crm_different, *self.lookups]
        return list(dict.fromkeys(keys))


class PreloadedRelation(NamedTuple):
    """
    A related record the caller has already loaded, so we can get its zoho_id without another query. `model` is the
    tag we compare against a lookup's model.
    """

    model: type[SQLModel]
    id: Any
    zoho_id: Optional[str]

    @classmethod
    def from_obj(cls, obj: SQLModel) -> 'PreloadedRelation':
        return cls(type(obj), obj.id, obj.zoho_id)


class PortalInput:
    """
    The data we send to Zoho. Either built from a portal model instance or from a dict payload, which may carry a
    secondary `data` dict used as a fallback for fields the payload doesn't set (partial updates send those).
    Use the from_entity and from_payload constructors.
    """

    def __init__(
        self,
        *,
        entity: Optional[SQLModel] = None,
        payload: Optional[dict] = None,
        secondary: Optional[dict] = None,
        relations: tuple[PreloadedRelation, ...] = (),
    ):
        assert (entity is None) != (payload is None), 'Exactly one of entity or payload is required'
        self.entity = entity
        self.payload = payload
        self.secondary = secondary
        self.relations = relations

    @classmethod
    def from_entity(cls, entity: SQLModel, relations=()) -> 'PortalInput':
        relations = tuple(r if isinstance(r, PreloadedRelation) else PreloadedRelation.from_obj(r) for r in relations)
        return cls(entity=entity, relations=relations)

    @classmethod
    def from_payload(cls, payload: dict, secondary: Optional[dict] = None) -> 'PortalInput':
        if secondary is None and isinstance(payload.get(SECONDARY_DATA_KEY), dict):
            secondary = payload[SECONDARY_DATA_KEY]
        return cls(payload=payload, secondary=secondary)

    @property
    def is_entity(self) -> bool:
        return self.entity is not None

    def get(self, key: str) -> Any:
        if self.entity is not None:
            return getattr(self.entity, key, None)
        return self.payload.get(key)

    def contains(self, key: str) -> bool:
        """
        Whether the input says anything at all about `key`. For payloads a key set to None counts, meaning the field
        should be cleared. A model always has every attribute, so there only a value counts.
        """
        if self.entity is not None:
            return getattr(self.entity, key, None) is not None
        return key in self.payload

    def in_secondary(self, key: str) -> bool:
        return self.secondary is not None and key in self.secondary

    def resolve(self, key: str) -> tuple[bool, Any]:
        """
        Finds the value for `key`, returning (found, value). A set value wins, then the secondary data, then an
        explicit None.
        """
        value = self.get(key)
        if value is not None:
            return True, value
        if self.in_secondary(key):
            return True, self.secondary[key]
        if self.contains(key):
            return True, None
        return False, None

    @property
    def zoho_id(self) -> Optional[str]:
        return self.get(ZOHO_ID)

    def __repr__(self):
        return f'<PortalInput {self.entity!r}>' if self.entity is not None else f'<PortalInput {self.payload!r}>'
