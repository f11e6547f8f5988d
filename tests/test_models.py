import pytest
from pydantic import ValidationError

from studio.models import Category, EventCreate, Photo


def test_category_parse():
    assert Category.parse("Motocross") is Category.MOTOCROSS
    assert Category.parse("all") is None
    assert Category.parse(None) is None


def test_event_create_requires_fields():
    with pytest.raises(ValidationError):
        EventCreate(name=" ", date="2024-03-15", location="Dreetz")
    with pytest.raises(ValidationError):
        EventCreate(name="Spring Cup", date="2024-02-30", location="Dreetz")


def test_event_create_row_drops_blank_description():
    row = EventCreate(name="Spring Cup", date="2024-03-15", location="Dreetz", description="  ").to_row()
    assert row == {"name": "Spring Cup", "date": "2024-03-15", "location": "Dreetz"}


def test_photo_tolerates_null_columns():
    p = Photo.model_validate(
        {"id": 5, "url": None, "category": "product", "start_number": None, "event_id": ""}
    )
    assert p.id == "5"
    assert p.url == ""
    assert p.start_number == ""
    assert p.event_id is None
