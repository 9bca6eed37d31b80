"""Tests for document id assignment and id-collision merging."""

from __future__ import annotations

import pytest

from synthgen.generate.ids import ID_EXTRACTORS, assign_id, dedupe_items, normalize_id
from synthgen.models import GeneratedItem


# ------------------------------------------------------------------
# normalize_id
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Box Breathing", "box-breathing"),
        ("Box   Breathing", "box-breathing"),
        ("Tab\tand\nnewline", "tab-and-newline"),
        (" padded ", "-padded-"),
        ("UPPER", "upper"),
        (42, "42"),
    ],
)
def test_normalize_id(raw, expected):
    assert normalize_id(raw) == expected


# ------------------------------------------------------------------
# assign_id precedence
# ------------------------------------------------------------------


def test_precedence_order():
    assert [name for name, _ in ID_EXTRACTORS] == ["id", "name", "condition_name", "exercise_name"]


def test_id_wins_over_name():
    assert assign_id({"id": "X1", "name": "Foo"}, 0) == "x1"


def test_name_used_when_no_id():
    assert assign_id({"name": "Box Breathing"}, 0) == "box-breathing"


def test_condition_name():
    assert assign_id({"condition_name": "Type 2 Diabetes"}, 5) == "type-2-diabetes"


def test_exercise_name():
    assert assign_id({"exercise_name": "Goblet Squat", "sets": 3}, 0) == "goblet-squat"


def test_name_wins_over_condition_and_exercise():
    item = {"condition_name": "Asthma", "exercise_name": "Plank", "name": "Chosen"}
    assert assign_id(item, 0) == "chosen"


@pytest.mark.parametrize("empty", ["", "   ", None])
def test_empty_fields_fall_through(empty):
    assert assign_id({"id": empty, "name": "Fallback Name"}, 0) == "fallback-name"


def test_positional_id_is_one_based():
    assert assign_id({"title": "no id fields"}, 0) == "item-1"
    assert assign_id({}, 6) == "item-7"


def test_non_mapping_payload_gets_positional_id():
    assert assign_id("just a string", 2) == "item-3"
    assert assign_id(["a", "b"], 0) == "item-1"


def test_numeric_id_is_used():
    assert assign_id({"id": 0}, 4) == "0"
    assert assign_id({"id": 17}, 4) == "17"


def test_structured_field_values_ignored():
    assert assign_id({"id": {"nested": 1}, "name": "Named"}, 0) == "named"
    assert assign_id({"id": True}, 0) == "item-1"


def test_assign_id_deterministic():
    item = {"name": "Same Thing"}
    assert assign_id(item, 3) == assign_id(dict(item), 3)


# ------------------------------------------------------------------
# dedupe_items
# ------------------------------------------------------------------


def test_dedupe_keeps_unique_items_in_order():
    items = [GeneratedItem("b", {"n": 1}), GeneratedItem("a", {"n": 2})]
    assert [i.id for i in dedupe_items(items)] == ["b", "a"]


def test_dedupe_merges_colliding_ids():
    items = [
        GeneratedItem("x", {"name": "X", "tags": ["a"], "meta": {"level": 1, "src": "one"}}),
        GeneratedItem("y", {"name": "Y"}),
        GeneratedItem("x", {"tags": ["b"], "meta": {"level": 2}}),
    ]

    result = dedupe_items(items)

    assert [i.id for i in result] == ["x", "y"]
    assert result[0].data == {"name": "X", "tags": ["b"], "meta": {"level": 2, "src": "one"}}


def test_dedupe_non_mapping_payload_replaced():
    items = [GeneratedItem("x", "first"), GeneratedItem("x", "second")]
    assert dedupe_items(items)[0].data == "second"


def test_dedupe_does_not_mutate_inputs():
    first = GeneratedItem("x", {"a": 1})
    dedupe_items([first, GeneratedItem("x", {"b": 2})])
    assert first.data == {"a": 1}
