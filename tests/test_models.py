"""Tests for the flashcard record model and note type schema."""

import pytest
from pydantic import ValidationError

from siyuan_anki_sync.anki.schema import MODEL_FIELDS, is_deck_prefix, is_in_subtree
from siyuan_anki_sync.models import FlashcardRecord


def test_anki_fields_follow_model_order(make_record) -> None:
    fields = make_record("A", kind="p", container_id="box1").to_anki_fields()

    assert tuple(fields) == MODEL_FIELDS
    assert fields["front"] == "front A"
    assert fields["box"] == "box1"
    assert fields["deck"] == "Root::NB::Topic"


def test_from_anki_fields_restores_record(make_record) -> None:
    original = make_record("A", parent_id="p1", sub_kind="h2")

    restored = FlashcardRecord.from_anki_fields(
        original.to_anki_fields(), note_id=5, card_ids=[9]
    )

    assert restored.id == "A"
    assert restored.parent_id == "p1"
    assert restored.sub_kind == "h2"
    assert restored.destination_note_id == 5
    assert restored.destination_card_ids == [9]
    assert restored.exists_in_anki


def test_missing_fields_become_empty_strings() -> None:
    record = FlashcardRecord.from_anki_fields({"id": "A", "front": None})

    assert record.front_content == ""
    assert record.updated_at == ""
    assert not record.exists_in_anki


def test_id_required() -> None:
    with pytest.raises(ValidationError):
        FlashcardRecord(id="")


@pytest.mark.parametrize(
    ("ancestor", "deck", "expected"),
    [
        ("Root", "Root::NB", True),
        ("Root::NB", "Root::NB::Topic", True),
        ("Root::NB", "Root::NB", False),
        ("Root::NB::Top", "Root::NB::Topic", False),
    ],
)
def test_is_deck_prefix(ancestor, deck, expected) -> None:
    assert is_deck_prefix(ancestor, deck) is expected


def test_is_in_subtree() -> None:
    assert is_in_subtree("Root", "Root")
    assert is_in_subtree("Root", "Root::NB")
    assert not is_in_subtree("Root", "Rooted")
