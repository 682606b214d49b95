import asyncio
import logging
import shlex
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.prompt import Prompt

from library_inventory.config import settings
from library_inventory.entities import EntityType
from library_inventory.errors import CatalogError, ValidationError
from library_inventory.inventory import LibraryInventory
from library_inventory.services.catalog_gateway import CatalogGateway
from library_inventory.utils.ui_helpers import (
    build_rows,
    print_entity_table,
    print_notification,
    set_output_mode,
)

APP_NAME = settings.app_name

console = Console()
logger = logging.getLogger(__name__)


def build_inventory() -> LibraryInventory:
    """Fresh application state bound to the configured API."""
    return LibraryInventory(CatalogGateway())


def _entity_type(raw: str) -> EntityType:
    try:
        return EntityType.parse(raw)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _parse_assignments(pairs: List[str]) -> Dict[str, Any]:
    """'name=Jane Austen' style arguments to a dict."""
    values: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected field=value, got {pair!r}")
        values[key.strip()] = value
    return values


def _show(inventory: LibraryInventory, entity_type: EntityType) -> None:
    rows = build_rows(entity_type, inventory.store(entity_type).list(), inventory.lookups(),
                      inventory.session(entity_type))
    print_entity_table(entity_type, rows)


async def _run(action) -> None:
    """Load the catalog, run ``action``, and report any error as a notification."""
    inventory = build_inventory()
    try:
        failures = await inventory.load()
        for entity_type, error in failures.items():
            print_notification("Error", f"Failed to fetch {entity_type.collection}: {error}", error=True)
        await action(inventory)
    except CatalogError as e:
        print_notification("Error", str(e), error=True)
    finally:
        await inventory.gateway.close()


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global options for the CLI (e.g. output mode)."""
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.WARNING))
    if output:
        set_output_mode(output)


@app.command("list")
def cli_list(entity: str = typer.Argument(..., help="authors | publishers | genres | books")):
    """List one collection."""
    entity_type = _entity_type(entity)

    async def action(inventory: LibraryInventory):
        _show(inventory, entity_type)

    asyncio.run(_run(action))


@app.command("add")
def cli_add(entity: str, fields: List[str] = typer.Argument(..., help="field=value pairs")):
    """Add an entity, e.g. add author name="Jane Austen" birth_year=1775 sex=F nationality=British"""
    entity_type = _entity_type(entity)
    values = _parse_assignments(fields)

    async def action(inventory: LibraryInventory):
        created = await inventory.add(entity_type, values)
        message = inventory.gateway.last_message or f"{entity_type.value.capitalize()} added successfully"
        print_notification("Success", f"{message} (id {created.id})")

    asyncio.run(_run(action))


@app.command("edit")
def cli_edit(entity: str, identifier: int, fields: List[str] = typer.Argument(..., help="field=value pairs")):
    """Edit one row and save it."""
    entity_type = _entity_type(entity)
    values = _parse_assignments(fields)

    async def action(inventory: LibraryInventory):
        session = inventory.session(entity_type)
        session.begin_edit(identifier)
        for field, value in values.items():
            session.change_field(identifier, field, value)
        await inventory.commit(entity_type)
        print_notification("Success", f"{entity_type.value.capitalize()} updated successfully")

    asyncio.run(_run(action))


@app.command("delete")
def cli_delete(entity: str, identifier: int):
    """Delete one row."""
    entity_type = _entity_type(entity)

    async def action(inventory: LibraryInventory):
        await inventory.delete(entity_type, identifier)
        print_notification("Success", f"{entity_type.value.capitalize()} deleted successfully")

    asyncio.run(_run(action))


SHELL_HELP = """Commands:
  tab <authors|publishers|genres|books>   switch tab
  list                                    show the current tab
  add field=value ...                     add to the current tab
  edit <id>                               start editing a row
  set <field> <value>                     change a field of the open row
  save | cancel                           commit or discard the open row
  delete <id>                             delete a row
  choices <authors|genres|publishers>     show selectable ids
  quit"""


class ShellState:
    def __init__(self) -> None:
        self.tab = EntityType.AUTHOR


async def shell_dispatch(inventory: LibraryInventory, state: ShellState, line: str) -> bool:
    """Run one shell command. Returns False when the shell should exit."""
    words = shlex.split(line)
    if not words:
        return True
    command, args = words[0].lower(), words[1:]
    session = inventory.session(state.tab)

    if command in ("quit", "exit"):
        return False
    if command == "help":
        print(SHELL_HELP)
    elif command == "tab":
        state.tab = EntityType.parse(args[0] if args else "")
        _show(inventory, state.tab)
    elif command == "list":
        _show(inventory, state.tab)
    elif command == "choices":
        for identifier, name in inventory.choices(EntityType.parse(args[0] if args else "")):
            print(f"{identifier} - {name}")
    elif command == "add":
        created = await inventory.add(state.tab, _parse_assignments(args))
        print_notification("Success", f"{state.tab.value.capitalize()} added successfully (id {created.id})")
    elif command == "edit":
        session.begin_edit(int(args[0]))
        _show(inventory, state.tab)
    elif command == "set":
        if session.is_idle:
            print_notification("Error", "Start editing a row first", error=True)
        elif len(args) < 2:
            print_notification("Error", "Usage: set <field> <value>", error=True)
        else:
            session.change_field(session.entity_id, args[0], " ".join(args[1:]))
    elif command == "save":
        await inventory.commit(state.tab)
        print_notification("Success", f"{state.tab.value.capitalize()} updated successfully")
        _show(inventory, state.tab)
    elif command == "cancel":
        session.cancel()
        _show(inventory, state.tab)
    elif command == "delete":
        await inventory.delete(state.tab, int(args[0]))
        print_notification("Success", f"{state.tab.value.capitalize()} deleted successfully")
    else:
        print_notification("Error", f"Unknown command: {command}", error=True)
    return True


@app.command("shell")
def cli_shell():
    """Interactive tabbed editor."""

    async def action(inventory: LibraryInventory):
        state = ShellState()
        print(SHELL_HELP)
        _show(inventory, state.tab)
        while True:
            try:
                line = Prompt.ask(f"[bold cyan]{state.tab.label}[/]")
            except EOFError:
                break
            try:
                if not await shell_dispatch(inventory, state, line):
                    break
            except ValidationError as e:
                print_notification("Validation Error", e.message, error=True)
            except CatalogError as e:
                print_notification("Error", str(e), error=True)
            except (ValueError, IndexError) as e:
                print_notification("Error", f"Invalid command: {e}", error=True)
            except typer.BadParameter as e:
                print_notification("Error", str(e), error=True)

    asyncio.run(_run(action))


if __name__ == "__main__":
    app()
