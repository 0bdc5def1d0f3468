import uuid

import pytest

from core.blood import ALL_BLOOD_TYPES, BloodType
from core.errors import ValidationError
from core.stock import (
    LOW_STOCK_THRESHOLD,
    STATUS_CRITICAL,
    STATUS_LOW,
    STATUS_NORMAL,
    InventoryRecord,
    apply_delta,
    empty_stock,
    stock_status,
)


def _record(**counts):
    stock = empty_stock()
    for label, n in counts.items():
        stock[BloodType(label)] = n
    return InventoryRecord(venue_id=uuid.uuid4(), blood_stock=stock)


def test_blood_types_are_the_eight_fixed_labels_in_display_order():
    assert [bt.value for bt in ALL_BLOOD_TYPES] == ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


@pytest.mark.parametrize("label", ["", "   ", None, "C+", "O", "AB"])
def test_parse_rejects_unknown_labels(label):
    with pytest.raises(ValidationError):
        BloodType.parse(label)


def test_parse_normalizes_case_and_whitespace():
    assert BloodType.parse(" ab- ") is BloodType.AB_NEG
    assert BloodType.parse(BloodType.O_POS) is BloodType.O_POS


@pytest.mark.parametrize(
    "count, expected",
    [(0, STATUS_CRITICAL), (1, STATUS_LOW), (4, STATUS_LOW), (5, STATUS_NORMAL), (40, STATUS_NORMAL)],
)
def test_stock_status_bands(count, expected):
    assert stock_status(count) == expected


def test_threshold_is_five():
    assert LOW_STOCK_THRESHOLD == 5


@pytest.mark.parametrize("current, delta", [(0, 1), (3, -1), (3, -3), (7, 5), (2, 0)])
def test_apply_delta_yields_exact_sum(current, delta):
    before = _record(**{"B+": current})
    after = apply_delta(before, "B+", delta)
    assert after.count("B+") == current + delta
    assert after.last_updated is not None


@pytest.mark.parametrize("current, delta", [(0, -1), (2, -3), (4, -10)])
def test_apply_delta_rejects_going_negative_without_mutation(current, delta):
    before = _record(**{"O-": current})
    with pytest.raises(ValidationError):
        apply_delta(before, "O-", delta)
    assert before.count("O-") == current


def test_apply_delta_only_touches_the_requested_type():
    before = _record(**{"A+": 2, "A-": 9})
    after = apply_delta(before, BloodType.A_POS, 1)
    assert after.count("A+") == 3
    assert after.count("A-") == 9
    assert before.count("A+") == 2


@pytest.mark.parametrize("delta", [1.5, "1", True, None])
def test_apply_delta_requires_an_integer(delta):
    with pytest.raises(ValidationError):
        apply_delta(_record(), "A+", delta)


def test_apply_delta_rejects_unknown_blood_type():
    with pytest.raises(ValidationError):
        apply_delta(_record(), "Z+", 1)


def test_cards_cover_every_type_with_derived_status():
    cards = _record(**{"A+": 0, "B+": 4, "O+": 5}).cards()
    assert [c["blood_type"] for c in cards] == ALL_BLOOD_TYPES
    by_type = {c["blood_type"].value: c for c in cards}
    assert by_type["A+"]["status"] == STATUS_CRITICAL
    assert by_type["A+"]["can_decrement"] is False
    assert by_type["B+"]["status"] == STATUS_LOW
    assert by_type["O+"]["status"] == STATUS_NORMAL
    assert by_type["O+"]["can_decrement"] is True
