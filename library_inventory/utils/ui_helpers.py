import os
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from library_inventory.entities import Entity, EntityType, Sex

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

COLUMNS: Dict[EntityType, List[Tuple[str, str]]] = {
    EntityType.AUTHOR: [("ID", "id"), ("Name", "name"), ("Year of Birth", "birth_year"),
                        ("Sex", "sex"), ("Nationality", "nationality")],
    EntityType.PUBLISHER: [("ID", "id"), ("Name", "name"), ("Country", "country")],
    EntityType.GENRE: [("ID", "id"), ("Name", "name")],
    EntityType.BOOK: [("ID", "id"), ("Title", "title"), ("Author", "author"), ("Genre", "genre"),
                      ("Publisher", "publisher"), ("Year of Publication", "publication_year")],
}

# Book foreign key -> (lookup collection, column key, placeholder)
_REFERENCES = [
    ("author_id", EntityType.AUTHOR, "author", "Unknown Author"),
    ("genre_id", EntityType.GENRE, "genre", "Unknown Genre"),
    ("publisher_id", EntityType.PUBLISHER, "publisher", "Unknown Publisher"),
]


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def build_rows(entity_type: EntityType, entities: Sequence[Entity],
               lookups: Optional[Dict[EntityType, Dict[int, str]]] = None,
               session=None) -> List[Dict[str, str]]:
    """Turn entities into display rows.

    Book references are resolved through ``lookups``; a dangling identifier
    shows the "Unknown ..." placeholder. The row open in ``session`` shows
    its draft values instead of the committed ones.
    """
    lookups = lookups or {}
    rows = []
    for entity in entities:
        values: Dict[str, Any] = entity.to_dict()
        editing = session is not None and session.is_editing(entity.id)
        if editing:
            values.update(session.draft)
        if entity_type is EntityType.BOOK:
            for fk, target, key, placeholder in _REFERENCES:
                values[key] = lookups.get(target, {}).get(_as_int(values.get(fk)), placeholder)
        if entity_type is EntityType.AUTHOR:
            sex = Sex.parse(values.get("sex"))
            values["sex"] = sex.label if sex else str(values.get("sex", ""))
        row = {key: "" if values.get(key) is None else str(values.get(key)) for _, key in COLUMNS[entity_type]}
        row["editing"] = "*" if editing else ""
        rows.append(row)
    return rows


def _as_int(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def print_entity_table(entity_type: EntityType, rows: List[Dict[str, str]]) -> None:
    """Print one tab according to the current output mode.
    - plain: 'id - col | col' lines, or 'No <label> yet.'
    - json: JSON array of row objects
    - rich: Rich table
    """
    mode = get_output_mode()

    if not rows:
        print(f"No {entity_type.label.lower()} yet.")
        return

    columns = COLUMNS[entity_type]
    if mode == "json":
        payload = [{key: row[key] for _, key in columns} for row in rows]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=entity_type.label, show_lines=True, header_style="bold cyan")
        table.add_column("", no_wrap=True)
        for header, _ in columns:
            table.add_column(header, style="magenta" if header == "ID" else "white")
        for row in rows:
            table.add_row(row["editing"], *(row[key] for _, key in columns))
        _console.print(table)
    else:
        for row in rows:
            cells = " | ".join(row[key] for _, key in columns[1:])
            print(f"{row['editing']}{row['id']} - {cells}")


def print_notification(title: str, message: str, error: bool = False) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"title": title, "message": message, "error": error}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(Panel.fit(message, title=title, border_style="red" if error else "green"))
    else:
        print(f"{title}: {message}")
