"""The observation entity and the value objects it references.

Conventions:
  - All datetimes are timezone-aware UTC; naive datetimes are rejected.
  - `Person`, `Concept`, `Location` and `Encounter` are reference snapshots of
    entities owned by other subsystems. They carry only what this service
    needs to filter and display observations.
  - Instances are immutable; lifecycle transitions produce new instances via
    `dataclasses.replace`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeAlias

from .errors import ValidationError
from .person_type import PersonKind

# pylint: disable=too-many-instance-attributes

# Largest id a BIGINT identity column can hold.
MAX_ID = 2**63 - 1


def _require_utc(name: str, value: datetime | None) -> None:
    if value is None:
        return
    if value.tzinfo is None or value.utcoffset() != timedelta(0):
        raise ValidationError(name, "must be timezone-aware UTC")


# --- Referenced entities ---


@dataclass(frozen=True, slots=True)
class Person:
    """The subject of an observation.

    `identifier` is the human-facing identifier (e.g. a medical record
    number) used by free-text search; it may be None for subjects without one.
    """

    person_id: int
    kind: PersonKind = PersonKind.PERSON
    identifier: str | None = None


@dataclass(frozen=True, slots=True)
class Concept:
    """A coded definition of what is measured or answered."""

    concept_id: int
    name: str = ""


@dataclass(frozen=True, slots=True)
class Location:
    """Where an observation was made."""

    location_id: int


@dataclass(frozen=True, slots=True)
class Encounter:
    """The clinical encounter an observation belongs to."""

    encounter_id: int


@dataclass(frozen=True, slots=True)
class MimeType:
    """Tag for the payload of a complex observation value."""

    mime_type_id: int
    mime_type: str
    description: str | None = None


# --- Values ---


class ValueType(Enum):
    """Discriminator for the typed payload of an observation."""

    CODED = "coded"
    NUMERIC = "numeric"
    TEXT = "text"
    COMPLEX = "complex"


@dataclass(frozen=True, slots=True)
class CodedValue:
    """An answer that is itself a concept."""

    answer: Concept
    value_type = ValueType.CODED

    def as_string(self) -> str:
        """Render as the answer concept's name (or its id when unnamed)."""
        return self.answer.name or str(self.answer.concept_id)


@dataclass(frozen=True, slots=True)
class NumericValue:
    """A numeric measurement."""

    value: float
    value_type = ValueType.NUMERIC

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValidationError("value", f"numeric value expected, got {self.value!r}")
        if not math.isfinite(self.value):
            raise ValidationError("value", "numeric value must be finite")
        object.__setattr__(self, "value", float(self.value))

    def as_string(self) -> str:
        """Render integral values without a trailing ``.0``."""
        if self.value.is_integer():
            return str(int(self.value))
        return str(self.value)


@dataclass(frozen=True, slots=True)
class TextValue:
    """A free-text answer."""

    text: str
    value_type = ValueType.TEXT

    def as_string(self) -> str:
        """Render as the text itself."""
        return self.text


@dataclass(frozen=True, slots=True)
class ComplexValue:
    """Binary payload tagged with a mime type (e.g. an image or a PDF)."""

    mime_type_id: int
    data: bytes
    title: str = ""
    value_type = ValueType.COMPLEX

    def as_string(self) -> str:
        """Render as the title, or the payload size when untitled."""
        return self.title or f"<{len(self.data)} bytes>"


ObsValue: TypeAlias = CodedValue | NumericValue | TextValue | ComplexValue


# --- Entity ---


@dataclass(frozen=True, slots=True)
class Obs:
    """A single recorded clinical fact.

    `obs_id` and `date_created` are None until the observation is persisted;
    a missing `obs_datetime` is stamped with the creation time.
    Lifecycle fields (`voided`, `void_reason`, `voided_date`) are only moved by
    `mark_voided()` and `mark_unvoided()`.
    """

    person: Person
    concept: Concept
    value: ObsValue
    obs_datetime: datetime | None = None
    obs_id: int | None = None
    location: Location | None = None
    encounter: Encounter | None = None
    obs_group_id: int | None = None
    comment: str | None = None
    date_created: datetime | None = None
    voided: bool = False
    void_reason: str | None = None
    voided_date: datetime | None = None

    def __post_init__(self) -> None:
        _require_utc("obs_datetime", self.obs_datetime)
        _require_utc("date_created", self.date_created)
        _require_utc("voided_date", self.voided_date)

    @property
    def value_type(self) -> ValueType:
        """The discriminator of this observation's value."""
        return self.value.value_type

    def mark_voided(self, reason: str, when: datetime) -> Obs:
        """Return a voided copy of this observation."""
        return replace(self, voided=True, void_reason=reason, voided_date=when)

    def mark_unvoided(self) -> Obs:
        """Return a copy with every lifecycle flag cleared."""
        return replace(self, voided=False, void_reason=None, voided_date=None)
