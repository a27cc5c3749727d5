"""
Tests for EntityFactory: drafts, clones, remote normalization, validation.
"""
from datetime import datetime, timezone

import pytest

from cardflow.errors import RecordFormatError
from cardflow.factory import EntityFactory, to_base36
from cardflow.models import Card, CardList, Confirmed, Draft
from cardflow.schemas import RemoteCard


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Drafts
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_create_card_trims_title_and_fills_defaults():
    card = EntityFactory.create_card(title=" Task ", list_id="L1")
    assert card.title == "Task"
    assert card.description == ""
    assert card.position == 0
    assert card.list_id == "L1"
    assert card.created_at == card.updated_at
    assert card.created_at.tzinfo is not None


def test_drafts_carry_draft_refs_with_prefixed_ids():
    card = EntityFactory.create_card(title="x", list_id="L1")
    card_list = EntityFactory.create_list(title="Todo")
    board = EntityFactory.create_board(title="  Board ")

    assert isinstance(card.ref, Draft) and card.is_draft
    assert card.id.startswith("card_")
    assert card_list.id.startswith("list_")
    assert card_list.cards == []
    assert board.id.startswith("board_")
    assert board.title == "Board"
    assert board.lists == []


def test_generated_ids_do_not_collide():
    ids = {EntityFactory.create_card(title="t", list_id="L1").id for _ in range(10_000)}
    assert len(ids) == 10_000


def test_generate_id_shape():
    prefix, timestamp, random_part = EntityFactory.generate_id("card").split("_")
    assert prefix == "card"
    assert int(timestamp, 36) > 0
    assert len(random_part) == 8


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"
    assert int(to_base36(1640995200000), 36) == 1640995200000


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Clones
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_clone_card_gets_new_id_and_inherits_fields():
    card = EntityFactory.create_card(title="Write", list_id="L1", description="docs", position=2)
    clone = EntityFactory.clone_card(card)
    assert clone.id != card.id
    assert (clone.title, clone.list_id, clone.description, clone.position) == ("Write", "L1", "docs", 2)

    moved = EntityFactory.clone_card(card, list_id="L2", position=0)
    assert moved.list_id == "L2"
    assert moved.position == 0
    assert moved.title == "Write"


def test_clone_of_confirmed_card_is_a_draft():
    card = EntityFactory.card_from_remote({"id": "c1", "title": "x", "list_id": "L1"})
    clone = EntityFactory.clone_card(card)
    assert clone.is_draft
    assert clone.id != "c1"


def test_clone_list_deep_clones_cards():
    source = EntityFactory.create_list(title="Doing", position=1)
    source.cards = [
        EntityFactory.create_card(title=f"c{i}", list_id=source.id, position=i) for i in range(3)
    ]

    clone = EntityFactory.clone_list(source)

    assert clone.id != source.id
    assert clone.title == "Doing (copy)"
    assert clone.position == 1
    assert len(clone.cards) == 3
    source_ids = {c.id for c in source.cards}
    for original, copied in zip(source.cards, clone.cards):
        assert copied.id not in source_ids
        assert copied.list_id == clone.id
        assert copied.title == original.title
        assert copied is not original


def test_clone_list_title_override():
    source = EntityFactory.create_list(title="Doing")
    assert EntityFactory.clone_list(source, title="Later").title == "Later"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Remote records
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_from_remote_card():
    card = EntityFactory.from_remote(
        {"id": "c1", "title": "x", "list_id": "L1", "created_at": "2024-01-01T00:00:00Z"}
    )
    expected = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert isinstance(card, Card)
    assert card.ref == Confirmed("c1")
    assert not card.is_draft
    assert card.list_id == "L1"
    assert card.created_at == expected
    assert card.updated_at == expected
    assert card.description == ""
    assert card.position == 0


def test_from_remote_keeps_updated_at_when_present():
    card = EntityFactory.from_remote(
        {
            "id": "c1",
            "title": "x",
            "list_id": "L1",
            "position": 3,
            "description": None,
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-02-01T12:30:00+00:00",
        }
    )
    assert card.updated_at == datetime(2024, 2, 1, 12, 30, tzinfo=timezone.utc)
    assert card.position == 3
    assert card.description == ""


def test_from_remote_treats_naive_timestamps_as_utc():
    card = EntityFactory.from_remote(
        {
            "id": "c1",
            "title": "x",
            "list_id": "L1",
            "created_at": "2024-01-01T00:00:00",
            "updated_at": "2024-01-02T08:00:00",
        }
    )
    assert card.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert card.created_at.tzinfo is not None
    assert card.updated_at == datetime(2024, 1, 2, 8, tzinfo=timezone.utc)


def test_from_remote_list_normalizes_nested_cards():
    card_list = EntityFactory.from_remote(
        {
            "id": "L1",
            "title": "Todo",
            "created_at": "2024-01-01T00:00:00Z",
            "cards": [
                {"id": "c1", "title": "a", "list_id": "L1", "created_at": "2024-01-01T00:00:00Z"},
                {"id": "c2", "title": "b", "list_id": "L1", "position": 1},
            ],
        }
    )
    assert isinstance(card_list, CardList)
    assert card_list.ref == Confirmed("L1")
    assert card_list.position == 0
    assert [c.id for c in card_list.cards] == ["c1", "c2"]
    assert all(c.list_id == "L1" for c in card_list.cards)


def test_from_remote_list_without_cards():
    card_list = EntityFactory.from_remote({"id": "L1", "title": None})
    assert card_list.cards == []
    assert card_list.title == ""
    assert card_list.updated_at == card_list.created_at


def test_from_remote_accepts_parsed_records():
    record = RemoteCard(id="c9", list_id="L2", title="parsed")
    assert EntityFactory.from_remote(record).list_id == "L2"


def test_from_remote_rejects_malformed_records():
    with pytest.raises(RecordFormatError):
        EntityFactory.card_from_remote({"title": "no id", "list_id": "L1"})
    with pytest.raises(RecordFormatError):
        EntityFactory.from_remote({"id": "c1", "list_id": "L1", "created_at": "not a date"})


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Validation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_validate_card_reports_every_violation():
    errors = EntityFactory.validate_card({"title": "", "list_id": None, "position": -1})
    assert len(errors) == 3
    assert errors == [
        "card title must not be empty",
        "card must belong to a list",
        "card position must be a non-negative number",
    ]


def test_validate_card_valid():
    assert EntityFactory.validate_card({"title": "ok", "list_id": "L1", "position": 0}) == []


def test_validate_card_accepts_entities():
    card = EntityFactory.create_card(title="ok", list_id="L1")
    assert EntityFactory.validate_card(card) == []
    card.title = "   "
    assert EntityFactory.validate_card(card) == ["card title must not be empty"]


def test_validate_card_position_must_be_a_number():
    assert EntityFactory.validate_card({"title": "ok", "list_id": "L1"}) == [
        "card position must be a non-negative number"
    ]
    assert EntityFactory.validate_card({"title": "ok", "list_id": "L1", "position": True}) != []


def test_validate_list():
    assert EntityFactory.validate_list({"title": "Todo", "position": 0}) == []
    assert EntityFactory.validate_list({"title": " ", "position": -2}) == [
        "list title must not be empty",
        "list position must be a non-negative number",
    ]
