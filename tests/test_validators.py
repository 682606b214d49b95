from datetime import datetime

import pytest

from library_inventory.entities import Author, Book, EntityType, Sex
from library_inventory.errors import ValidationError
from library_inventory.utils.validators import is_valid, validate

CURRENT_YEAR = datetime.now().year


def _author(**overrides):
    data = {"name": "Jane Austen", "birth_year": 1775, "sex": "F", "nationality": "British"}
    data.update(overrides)
    return data


def _book(**overrides):
    data = {"title": "Emma", "author_id": 1, "genre_id": 2, "publisher_id": 3, "publication_year": 1815}
    data.update(overrides)
    return data


def test_valid_author_is_normalized():
    author = validate(EntityType.AUTHOR, _author(name="  Jane Austen ", birth_year="1775", sex="Female"))
    assert isinstance(author, Author)
    assert author.name == "Jane Austen"
    assert author.birth_year == 1775
    assert author.sex is Sex.FEMALE
    assert author.id is None


def test_identifier_is_carried_through():
    assert validate(EntityType.GENRE, {"id": 7, "name": "Novel"}).id == 7


def test_valid_book():
    book = validate(EntityType.BOOK, _book(author_id="4"))
    assert isinstance(book, Book)
    assert book.author_id == 4
    assert book.publication_year == 1815


@pytest.mark.parametrize("entity_type,candidate,field,message", [
    (EntityType.AUTHOR, _author(name="   "), "name", "Name is required"),
    (EntityType.AUTHOR, _author(birth_year=999), "birth_year", "Invalid year"),
    (EntityType.AUTHOR, _author(birth_year=CURRENT_YEAR + 1), "birth_year", "Year cannot be in the future"),
    (EntityType.AUTHOR, _author(birth_year="abc"), "birth_year", "Invalid year"),
    (EntityType.AUTHOR, _author(birth_year=True), "birth_year", "Invalid year"),
    (EntityType.AUTHOR, _author(birth_year="--1775"), "birth_year", "Invalid year"),
    (EntityType.AUTHOR, _author(birth_year="²"), "birth_year", "Invalid year"),
    (EntityType.BOOK, _book(author_id="--4"), "author_id", "Author is required"),
    (EntityType.BOOK, _book(genre_id="²"), "genre_id", "Genre is required"),
    (EntityType.AUTHOR, _author(sex="X"), "sex", "Invalid sex"),
    (EntityType.AUTHOR, _author(nationality=""), "nationality", "Nationality is required"),
    (EntityType.PUBLISHER, {"name": "Penguin"}, "country", "Country is required"),
    (EntityType.GENRE, {}, "name", "Name is required"),
    (EntityType.BOOK, _book(title=None), "title", "Title is required"),
    (EntityType.BOOK, _book(author_id=0), "author_id", "Author is required"),
    (EntityType.BOOK, _book(genre_id=""), "genre_id", "Genre is required"),
    (EntityType.BOOK, _book(publisher_id=None), "publisher_id", "Publisher is required"),
    (EntityType.BOOK, _book(publication_year=2.5), "publication_year", "Invalid year"),
])
def test_failure_names_the_field(entity_type, candidate, field, message):
    with pytest.raises(ValidationError) as exc:
        validate(entity_type, candidate)
    assert exc.value.field == field
    assert exc.value.message == message


def test_year_bounds_are_inclusive():
    assert validate(EntityType.AUTHOR, _author(birth_year=1000)).birth_year == 1000
    assert validate(EntityType.AUTHOR, _author(birth_year=CURRENT_YEAR)).birth_year == CURRENT_YEAR


def test_only_first_error_is_reported():
    with pytest.raises(ValidationError) as exc:
        validate(EntityType.AUTHOR, {"name": "", "birth_year": 5, "sex": "?", "nationality": ""})
    assert exc.value.field == "name"


def test_current_year_can_be_pinned():
    with pytest.raises(ValidationError, match="future"):
        validate(EntityType.BOOK, _book(publication_year=1900), current_year=1850)


def test_is_valid():
    assert is_valid(EntityType.GENRE, {"name": "Poetry"})
    assert not is_valid(EntityType.GENRE, {"name": ""})
