"""Unit tests for PersonKind and the PersonType selector mask."""

import pytest

from clinobs.domain.errors import ValidationError
from clinobs.domain.person_type import PersonKind, PersonType


def test_flag_values_match_historical_constants():
    """PERSON=1, PATIENT=2, USER=4 so integer masks keep their meaning."""
    assert PersonType.PERSON.value == 1
    assert PersonType.PATIENT.value == 2
    assert PersonType.USER.value == 4
    assert PersonType.ANY.value == 0


@pytest.mark.parametrize("kind", list(PersonKind))
def test_kind_flag_selects_only_that_kind(kind):
    """A kind's own flag admits that kind and no other."""
    assert kind.flag.kinds() == (kind,)


def test_empty_mask_matches_every_kind():
    """ANY (no bits set) admits every subject kind."""
    assert all(PersonType.ANY.matches(kind) for kind in PersonKind)
    assert PersonType.ANY.kinds() == tuple(PersonKind)


def test_combined_mask_admits_each_set_bit():
    """PATIENT | USER admits patients and users but not plain persons."""
    mask = PersonType.PATIENT | PersonType.USER
    assert mask.matches(PersonKind.PATIENT)
    assert mask.matches(PersonKind.USER)
    assert not mask.matches(PersonKind.PERSON)
    assert mask.kinds() == (PersonKind.PATIENT, PersonKind.USER)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, PersonType.ANY),
        (0, PersonType.ANY),
        (2, PersonType.PATIENT),
        (6, PersonType.PATIENT | PersonType.USER),
        (PersonType.USER, PersonType.USER),
    ],
)
def test_coerce_accepts_flags_ints_and_none(raw, expected):
    """coerce normalizes the accepted mask spellings."""
    assert PersonType.coerce(raw) == expected


@pytest.mark.parametrize("raw", [8, -1, 15, True, "2", 2.0])
def test_coerce_rejects_unknown_bits_and_types(raw):
    """Bits outside PERSON|PATIENT|USER, and non-int values, are invalid."""
    with pytest.raises(ValidationError) as excinfo:
        PersonType.coerce(raw)
    assert excinfo.value.field == "person_type"


@pytest.mark.parametrize(
    "kinds, expected",
    [
        ([], PersonType.ANY),
        ([PersonKind.PATIENT], PersonType.PATIENT),
        ((PersonKind.USER, PersonKind.PATIENT), PersonType.PATIENT | PersonType.USER),
        ({PersonKind.PERSON, PersonKind.PERSON}, PersonType.PERSON),
    ],
)
def test_coerce_accepts_iterables_of_kinds(kinds, expected):
    """An iterable of subject kinds combines their bits."""
    assert PersonType.coerce(kinds) == expected


def test_coerce_rejects_iterables_of_non_kinds():
    """Every member of an iterable must be a PersonKind."""
    with pytest.raises(ValidationError) as excinfo:
        PersonType.coerce([PersonKind.USER, "patient"])
    assert excinfo.value.field == "person_type"
