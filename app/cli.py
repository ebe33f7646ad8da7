#!/usr/bin/env python
"""
Command line tools for syncing single records with Zoho, mostly useful for debugging the field mappings.
"""

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from app.core import database
from app.core.logging import get_logger, setup_logging
from app.exceptions import ZohoSyncError
from app.zoho._process import pull_and_save, push_and_save
from app.zoho.api import get_zoho_client
from app.zoho.field_mappings import MAPPING_SPECS
from app.zoho.process import RecordSyncService
from app.zoho.store import SQLModelEntityStore

console = Console()
app = typer.Typer(help='Sync portal records with Zoho CRM')
logger = get_logger('portal_sync.cli')


@app.callback()
def main():
    setup_logging()


def _service(entity: str, db: database.DBSession) -> RecordSyncService:
    if entity not in MAPPING_SPECS:
        console.print(f'[red]Unknown entity {entity}, choose from: {", ".join(MAPPING_SPECS)}[/red]')
        raise typer.Exit(1)
    return RecordSyncService(MAPPING_SPECS[entity], get_zoho_client(), SQLModelEntityStore(db))


def _fail(e: Exception | str):
    console.print(f'[red]✗ {escape(str(e))}[/red]')
    raise typer.Exit(1)


def display_records(entity: str, records: list[dict]):
    """Display parsed records in a table, one column per portal field"""
    table = Table(title=f'Zoho {MAPPING_SPECS[entity].module}')
    for key in MAPPING_SPECS[entity].portal_keys:
        table.add_column(key, style='cyan' if key == 'zoho_id' else None)
    for record in records:
        table.add_row(*('' if v is None else str(v) for v in record.values()))
    console.print(table)


@app.command()
def records(entity: str):
    """Show the first page of records for an entity"""
    with database.get_session() as db:
        try:
            parsed = _service(entity, db).fetch_all()
        except ZohoSyncError as e:
            _fail(e)
    if not parsed:
        console.print('[yellow]No records found.[/yellow]')
        return
    display_records(entity, parsed)


@app.command()
def search(entity: str, parent_field: str, parent_id: str):
    """Show the records linked to a parent record, e.g. `search contacts Account_Name <zoho id>`"""
    with database.get_session() as db:
        try:
            parsed = _service(entity, db).search(parent_field, parent_id)
        except ZohoSyncError as e:
            _fail(e)
    display_records(entity, parsed)


@app.command()
def push(entity: str, local_id: int, workflow: bool = typer.Option(False, help='Trigger Zoho workflow rules')):
    """Send a portal record to Zoho, creating or updating it"""
    with database.get_session() as db:
        service = _service(entity, db)
        obj = db.get(service.spec.model, local_id)
        if not obj:
            _fail(f'{service.spec.model.__name__} {local_id} not found')
        try:
            created = push_and_save(service, db, obj, with_workflow=workflow)
        except ZohoSyncError as e:
            _fail(e)
        console.print(f'[green]✓ {"Created" if created else "Updated"} {service.module} {obj.zoho_id}[/green]')


@app.command()
def pull(entity: str, zoho_id: str):
    """Save a Zoho record as a portal record"""
    with database.get_session() as db:
        service = _service(entity, db)
        try:
            obj, created = pull_and_save(service, db, zoho_id)
        except (ZohoSyncError, ValidationError) as e:
            _fail(e)
        console.print(f'[green]✓ {"Created" if created else "Updated"} {type(obj).__name__} {obj.id}[/green]')


@app.command()
def check():
    """Check we can authenticate with Zoho"""
    client = get_zoho_client()
    try:
        client.initialize()
    except Exception as e:
        logger.exception('Zoho authentication failed')
        _fail(e)
    console.print(f'[green]✓ Authenticated with Zoho at {client.api_domain}[/green]')


if __name__ == '__main__':
    app()
