from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

STATUS_SUCCESS = 'success'


class CrmRecord(BaseModel):
    """
    A record as returned by the Zoho API: the id plus a dict of every field keyed by its API name.
    """

    id: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @model_validator(mode='before')
    @classmethod
    def split_id(cls, values: Any) -> Any:
        """
        Zoho returns records flat, with `id` alongside the other fields.
        """
        if isinstance(values, dict) and 'data' not in values:
            values = dict(values)
            return {'id': values.pop('id', None), 'data': values}
        return values


class EntityResponse(BaseModel):
    """
    Zoho's result for one record in a create or update request.
    """

    status: str
    code: Optional[str] = None
    message: Optional[str] = None
    details: Any = None

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def id(self) -> Optional[str]:
        if isinstance(self.details, dict) and self.details.get('id') is not None:
            return str(self.details['id'])
        return None
