import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from library_inventory.entities import Entity, EntityType, Sex
from library_inventory.errors import ValidationError

MIN_YEAR = 1000
_INTEGER = re.compile(r"-?[0-9]+")


class TextValidator:
    """Required-string checks. Whitespace-only counts as empty."""

    @staticmethod
    def normalize(text: Any) -> str:
        if text is None:
            return ""
        if not isinstance(text, str):
            text = str(text)
        return text.strip()

    @staticmethod
    def require(field: str, text: Any, message: str) -> str:
        value = TextValidator.normalize(text)
        if not value:
            raise ValidationError(field, message)
        return value


class YearValidator:
    """Integer years in [MIN_YEAR, current year], both ends inclusive."""

    @staticmethod
    def coerce(raw: Any) -> Optional[int]:
        # bool is an int subclass; a checkbox value is never a year
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float):
            return int(raw) if raw.is_integer() else None
        if isinstance(raw, str):
            s = raw.strip()
            if _INTEGER.fullmatch(s):
                return int(s)
        return None

    @staticmethod
    def check(field: str, raw: Any, current_year: int) -> int:
        year = YearValidator.coerce(raw)
        if year is None or year < MIN_YEAR:
            raise ValidationError(field, "Invalid year")
        if year > current_year:
            raise ValidationError(field, "Year cannot be in the future")
        return year


class ReferenceValidator:
    """Foreign identifiers must be positive integers. Existence is not checked here."""

    @staticmethod
    def check(field: str, raw: Any, message: str) -> int:
        value = YearValidator.coerce(raw)
        if value is None or value < 1:
            raise ValidationError(field, message)
        return value


def _sex(field: str, raw: Any) -> Sex:
    sex = Sex.parse(raw)
    if sex is None:
        raise ValidationError(field, "Invalid sex")
    return sex


Rule = Callable[[Any, int], Any]

# Field order is the order errors are reported in.
RULES: Dict[EntityType, List[Tuple[str, Rule]]] = {
    EntityType.AUTHOR: [
        ("name", lambda v, y: TextValidator.require("name", v, "Name is required")),
        ("birth_year", lambda v, y: YearValidator.check("birth_year", v, y)),
        ("sex", lambda v, y: _sex("sex", v)),
        ("nationality", lambda v, y: TextValidator.require("nationality", v, "Nationality is required")),
    ],
    EntityType.PUBLISHER: [
        ("name", lambda v, y: TextValidator.require("name", v, "Name is required")),
        ("country", lambda v, y: TextValidator.require("country", v, "Country is required")),
    ],
    EntityType.GENRE: [
        ("name", lambda v, y: TextValidator.require("name", v, "Name is required")),
    ],
    EntityType.BOOK: [
        ("title", lambda v, y: TextValidator.require("title", v, "Title is required")),
        ("author_id", lambda v, y: ReferenceValidator.check("author_id", v, "Author is required")),
        ("genre_id", lambda v, y: ReferenceValidator.check("genre_id", v, "Genre is required")),
        ("publisher_id", lambda v, y: ReferenceValidator.check("publisher_id", v, "Publisher is required")),
        ("publication_year", lambda v, y: YearValidator.check("publication_year", v, y)),
    ],
}


def validate(entity_type: EntityType, candidate: Mapping[str, Any], current_year: Optional[int] = None) -> Entity:
    """Check a candidate and build the normalized entity.

    Args:
        entity_type: Which collection the candidate belongs to.
        candidate: Field values keyed by field name; ``id`` is carried through.
        current_year: Upper bound for years, defaults to today's year.

    Returns:
        A frozen entity ready for store insertion.

    Raises:
        ValidationError: for the first failing field only.
    """
    entity_type = EntityType(entity_type)
    year = current_year if current_year is not None else datetime.now().year
    values: Dict[str, Any] = {"id": candidate.get("id")}
    for field, rule in RULES[entity_type]:
        values[field] = rule(candidate.get(field), year)
    return entity_type.entity_class(**values)


def is_valid(entity_type: EntityType, candidate: Mapping[str, Any]) -> bool:
    try:
        validate(entity_type, candidate)
    except ValidationError:
        return False
    return True
