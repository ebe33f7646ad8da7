from typing import Any, Optional, Protocol

from sqlmodel import SQLModel, select

from app.core.database import DBSession


class EntityStore(Protocol):
    def find_by_external_id(self, model: type[SQLModel], zoho_id: str) -> Optional[SQLModel]: ...

    def find_by_id(self, model: type[SQLModel], local_id: Any) -> Optional[SQLModel]: ...


class SQLModelEntityStore:
    """
    Looks up portal records in the database. Every synced model has a `zoho_id` column.
    """

    def __init__(self, db: DBSession):
        self.db = db

    def find_by_external_id(self, model: type[SQLModel], zoho_id: str) -> Optional[SQLModel]:
        return self.db.exec(select(model).where(model.zoho_id == str(zoho_id))).first()

    def find_by_id(self, model: type[SQLModel], local_id: Any) -> Optional[SQLModel]:
        return self.db.get(model, local_id)
