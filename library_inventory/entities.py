from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type


class EntityType(str, Enum):
    """The four catalog collections, one tab each."""

    AUTHOR = "author"
    PUBLISHER = "publisher"
    GENRE = "genre"
    BOOK = "book"

    @property
    def collection(self) -> str:
        return f"{self.value}s"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def entity_class(self) -> Type["Entity"]:
        return ENTITY_CLASSES[self]

    @classmethod
    def parse(cls, raw: str) -> "EntityType":
        """Accept 'author', 'authors' or 'Author'."""
        key = (raw or "").strip().lower()
        for member in cls:
            if key in (member.value, member.collection):
                return member
        raise ValueError(f"Unknown entity type: {raw!r}")


_LABELS = {
    EntityType.AUTHOR: "Authors",
    EntityType.PUBLISHER: "Publishers",
    EntityType.GENRE: "Literary Genres",
    EntityType.BOOK: "Books",
}


class Sex(str, Enum):
    MALE = "M"
    FEMALE = "F"
    OTHER = "O"

    @property
    def label(self) -> str:
        return {"M": "Male", "F": "Female", "O": "Other"}[self.value]

    @classmethod
    def parse(cls, raw: Any) -> Optional["Sex"]:
        if isinstance(raw, Sex):
            return raw
        if not isinstance(raw, str):
            return None
        key = raw.strip().lower()
        for member in cls:
            if key in (member.value.lower(), member.label.lower()):
                return member
        return None


@dataclass(frozen=True)
class Entity:
    """Base for catalog records. Records are replaced, never mutated."""

    id: Optional[int]

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name != "id")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs.setdefault("id", None)
        return cls(**kwargs)

    @property
    def display_name(self) -> str:
        return getattr(self, "name", "")


@dataclass(frozen=True)
class Author(Entity):
    name: str
    birth_year: int
    sex: Sex
    nationality: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Author":
        data = dict(data)
        sex = Sex.parse(data.get("sex"))
        if sex is None:
            raise ValueError(f"Unknown sex: {data.get('sex')!r}")
        data["sex"] = sex
        return super().from_dict(data)


@dataclass(frozen=True)
class Publisher(Entity):
    name: str
    country: str


@dataclass(frozen=True)
class Genre(Entity):
    name: str


@dataclass(frozen=True)
class Book(Entity):
    title: str
    author_id: int
    genre_id: int
    publisher_id: int
    publication_year: int

    @property
    def display_name(self) -> str:
        return self.title


ENTITY_CLASSES: Dict[EntityType, Type[Entity]] = {
    EntityType.AUTHOR: Author,
    EntityType.PUBLISHER: Publisher,
    EntityType.GENRE: Genre,
    EntityType.BOOK: Book,
}
