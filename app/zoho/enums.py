"""
Translation of enumerated values between the portal and Zoho.

There are two kinds of codec:

* EqualCodec - both sides have the same set of choices, they are just stored differently (e.g. Zoho stores the
  picklist label and the portal stores a short key). This is a plain lookup table in both directions.
* DifferentCodec - the two sides have different vocabularies, so the mapping may be many to one or need some
  normalising first. We don't assume these can be inverted.

Neither will invent a value for missing data: None always translates to None.
"""

from typing import Any, Callable, Hashable, Optional

from app.exceptions import UnknownEnumValue


class EnumCodec:
    name: str

    def _to_portal(self, value: Any) -> Any:
        raise NotImplementedError

    def _to_crm(self, value: Any) -> Any:
        raise NotImplementedError

    def to_portal(self, value: Any) -> Any:
        if value is None:
            return None
        return self._to_portal(value)

    def to_crm(self, value: Any) -> Any:
        if value is None:
            return None
        return self._to_crm(value)

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.name}>'


class EqualCodec(EnumCodec):
    def __init__(self, name: str, table: dict[Hashable, Hashable]):
        """
        :param table: Zoho value -> portal value
        """
        reverse = {v: k for k, v in table.items()}
        if len(reverse) != len(table):
            raise ValueError(f'Portal values for {name} must be unique')
        self.name = name
        self._crm_to_portal = dict(table)
        self._portal_to_crm = reverse

    @property
    def crm_values(self) -> list:
        return list(self._crm_to_portal)

    @property
    def portal_values(self) -> list:
        return list(self._portal_to_crm)

    def _to_portal(self, value):
        try:
            return self._crm_to_portal[value]
        except (KeyError, TypeError):
            raise UnknownEnumValue(self.name, value)

    def _to_crm(self, value):
        try:
            return self._portal_to_crm[value]
        except (KeyError, TypeError):
            raise UnknownEnumValue(self.name, value)


def _normalise_label(label: Any) -> Any:
    if isinstance(label, str):
        return ' '.join(label.split()).casefold()
    return label


class DifferentCodec(EnumCodec):
    def __init__(self, name: str, to_portal: Callable[[Any], Any], to_crm: Callable[[Any], Any]):
        """
        The callables should raise UnknownEnumValue for values they don't recognise. They are never called with None.
        """
        self.name = name
        self._to_portal_func = to_portal
        self._to_crm_func = to_crm

    def _to_portal(self, value):
        return self._to_portal_func(value)

    def _to_crm(self, value):
        return self._to_crm_func(value)

    @classmethod
    def from_vocabulary(
        cls, name: str, crm_to_portal: dict[str, str], portal_to_crm: dict[str, str]
    ) -> 'DifferentCodec':
        """
        Builds a codec from two independent tables. Zoho labels are matched ignoring case and repeated whitespace, as
        picklist labels get edited in the Zoho UI far more often than the portal's keys change.
        """
        normalised = {_normalise_label(k): v for k, v in crm_to_portal.items()}

        def to_portal(value: Any) -> Optional[str]:
            try:
                return normalised[_normalise_label(value)]
            except (KeyError, TypeError):
                raise UnknownEnumValue(name, value)

        def to_crm(value: Any) -> Optional[str]:
            try:
                return portal_to_crm[value]
            except (KeyError, TypeError):
                raise UnknownEnumValue(name, value)

        return cls(name, to_portal=to_portal, to_crm=to_crm)


ACCOUNT_STATUS = EqualCodec('AccountStatus', {'Inactive': 'inactive', 'Active': 'active', 'Churned': 'churned'})

DEAL_STAGE = EqualCodec(
    'DealStage',
    {
        'Qualification': 'qualification',
        'Needs Analysis': 'needs_analysis',
        'Proposal/Price Quote': 'proposal',
        'Negotiation/Review': 'negotiation',
        'Closed Won': 'won',
        'Closed Lost': 'lost',
    },
)

TASK_STATUS = EqualCodec(
    'TaskStatus',
    {
        'Not Started': 'todo',
        'In Progress': 'in_progress',
        'Waiting for input': 'waiting',
        'Deferred': 'deferred',
        'Completed': 'done',
    },
)

LEAD_SOURCE = DifferentCodec.from_vocabulary(
    'LeadSource',
    crm_to_portal={
        'Advertisement': 'advert',
        'Cold Call': 'cold_call',
        'Employee Referral': 'referral',
        'External Referral': 'referral',
        'Partner': 'referral',
        'Seminar Partner': 'event',
        'Trade Show': 'event',
        'Web Download': 'web',
        'Web Research': 'web',
        'Website': 'web',
        'Chat': 'web',
        '-None-': 'unknown',
    },
    portal_to_crm={
        'advert': 'Advertisement',
        'cold_call': 'Cold Call',
        'referral': 'External Referral',
        'event': 'Trade Show',
        'web': 'Website',
        'unknown': '-None-',
    },
)
