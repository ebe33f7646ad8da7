from datetime import date, datetime, timezone
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


class Account(SQLModel, table=True):
    """
    A customer organisation in the portal.
    In Zoho this is an Account.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    zoho_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=32)

    name: str = Field(max_length=255)
    website: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    billing_country: Optional[str] = Field(default=None, max_length=100)
    employee_count: Optional[int] = Field(default=None)
    status: Optional[str] = Field(default=None, max_length=20)
    is_partner: Optional[bool] = Field(default=None)
    # Zoho user id of the account owner, we don't store Zoho users locally
    owner_zoho_id: Optional[str] = Field(default=None, max_length=32)

    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    contacts: List['Contact'] = Relationship(back_populates='account')
    deals: List['Deal'] = Relationship(back_populates='account')

    def __str__(self):
        return self.name


class Contact(SQLModel, table=True):
    """
    A person at an Account.
    In Zoho this is a Contact.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    zoho_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=32)

    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: str = Field(max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    lead_source: Optional[str] = Field(default=None, max_length=20)
    email_opt_out: Optional[bool] = Field(default=None)

    account_id: Optional[int] = Field(default=None, foreign_key='account.id')
    account: Optional[Account] = Relationship(back_populates='contacts')

    @property
    def name(self) -> str:
        return f'{self.first_name or ""} {self.last_name}'.strip()

    def __str__(self):
        return self.name


class Deal(SQLModel, table=True):
    """
    A sales opportunity.
    In Zoho this is a Deal.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    zoho_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=32)

    name: str = Field(max_length=255)
    amount: Optional[float] = Field(default=None)
    closing_date: Optional[date] = Field(default=None)
    stage: Optional[str] = Field(default=None, max_length=30)
    lead_source: Optional[str] = Field(default=None, max_length=20)

    account_id: Optional[int] = Field(default=None, foreign_key='account.id')
    contact_id: Optional[int] = Field(default=None, foreign_key='contact.id')

    account: Optional[Account] = Relationship(back_populates='deals')
    contact: Optional[Contact] = Relationship()

    def __str__(self):
        return self.name


class Task(SQLModel, table=True):
    """
    A follow up task, linked to either an Account or a Deal.
    In Zoho this is a Task, with one lookup field per parent type.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    zoho_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=32)

    subject: str = Field(max_length=255)
    due_date: Optional[date] = Field(default=None)
    status: Optional[str] = Field(default=None, max_length=20)

    account_id: Optional[int] = Field(default=None, foreign_key='account.id')
    deal_id: Optional[int] = Field(default=None, foreign_key='deal.id')

    def __str__(self):
        return self.subject
