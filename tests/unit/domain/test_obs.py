"""Unit tests for the Obs entity and its value objects."""

from datetime import datetime, timedelta, timezone

import pytest

from clinobs.domain.errors import ValidationError
from clinobs.domain.obs import (
    CodedValue,
    ComplexValue,
    Concept,
    NumericValue,
    Obs,
    Person,
    TextValue,
    ValueType,
)

WHEN = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)

# pylint: disable=magic-value-comparison

# ============================================================================
#                                  Values
# ============================================================================


@pytest.mark.parametrize(
    "value, expected_type, rendered",
    [
        (CodedValue(Concept(703, "POSITIVE")), ValueType.CODED, "POSITIVE"),
        (CodedValue(Concept(703)), ValueType.CODED, "703"),
        (NumericValue(70), ValueType.NUMERIC, "70"),
        (NumericValue(36.6), ValueType.NUMERIC, "36.6"),
        (TextValue("stable"), ValueType.TEXT, "stable"),
        (ComplexValue(5, b"\x00" * 12, "x-ray"), ValueType.COMPLEX, "x-ray"),
        (ComplexValue(5, b"\x00" * 12), ValueType.COMPLEX, "<12 bytes>"),
    ],
)
def test_value_type_and_rendering(value, expected_type, rendered):
    """Each value reports its discriminator and renders as a string."""
    assert value.value_type is expected_type
    assert value.as_string() == rendered


def test_numeric_value_is_stored_as_float():
    """Integers are normalized to float so equal numbers compare equal."""
    assert NumericValue(70) == NumericValue(70.0)
    assert isinstance(NumericValue(70).value, float)


@pytest.mark.parametrize("bad", [True, "70", None, float("nan"), float("inf")])
def test_numeric_value_rejects_non_finite_and_non_numbers(bad):
    """Booleans, strings, None, NaN and infinities are not measurements."""
    with pytest.raises(ValidationError):
        NumericValue(bad)


# ============================================================================
#                                  Entity
# ============================================================================


def _obs(**overrides) -> Obs:
    base = {
        "person": Person(1),
        "concept": Concept(5089, "WEIGHT (KG)"),
        "value": NumericValue(70),
        "obs_datetime": WHEN,
    }
    base.update(overrides)
    return Obs(**base)


@pytest.mark.parametrize("field", ["obs_datetime", "date_created", "voided_date"])
def test_naive_datetimes_are_rejected(field):
    """Every datetime field must be tz-aware UTC."""
    with pytest.raises(ValidationError) as excinfo:
        _obs(**{field: datetime(2024, 3, 1, 8, 30)})
    assert excinfo.value.field == field


def test_non_utc_offset_is_rejected():
    """An aware datetime with a non-zero offset is rejected."""
    with pytest.raises(ValidationError):
        _obs(obs_datetime=datetime(2024, 3, 1, 8, 30, tzinfo=timezone(timedelta(hours=2))))


def test_value_type_follows_value():
    """Obs.value_type is the discriminator of its value."""
    assert _obs(value=TextValue("x")).value_type is ValueType.TEXT


def test_mark_voided_sets_lifecycle_fields():
    """mark_voided returns a voided copy and leaves the original untouched."""
    original = _obs(obs_id=3)
    voided = original.mark_voided("entered in error", WHEN)

    assert voided.voided is True
    assert voided.void_reason == "entered in error"
    assert voided.voided_date == WHEN
    assert original.voided is False


def test_mark_unvoided_clears_every_lifecycle_field():
    """Unvoiding clears the flag, the reason and the timestamp."""
    restored = _obs(obs_id=3).mark_voided("dup", WHEN).mark_unvoided()
    assert (restored.voided, restored.void_reason, restored.voided_date) == (
        False,
        None,
        None,
    )
    assert restored == _obs(obs_id=3)


def test_obs_is_hashable_and_compares_by_value():
    """Equal observations collapse in a set."""
    assert len({_obs(obs_id=1), _obs(obs_id=1), _obs(obs_id=2)}) == 2
