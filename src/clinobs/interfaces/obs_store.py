"""Storage ports for observations and mime types.

This module defines:
- `ObsStore`, the port the service layer uses to persist and query
  observations.
- `MimeTypeCatalog`, the read-only port for mime types.
- `ObsSortKey` and `NumericAnswer`, small DTOs exchanged through the ports.

Contract overview
-----------------
Writes:
- `add` / `add_many` assign `obs_id`s and return the persisted observations in
  input order. Atomicity across several writes is the unit of work's job.
- `update` and `delete` raise `ObsNotFoundError` when the id is unknown.
- `allocate_group_id` returns a fresh group id never handed out before.

Reads:
- `get` returns None for an unknown id ("not found" is distinct from empty).
- `list_*` and the other queries return a (possibly empty) list and exclude
  voided observations unless they say otherwise.
- A `person_kinds` argument of None means "any subject kind".

Errors:
- Backend failures surface as `PersistenceError` (or its subclass
  `StoreUnavailableError` for operational/connection problems).
"""

from __future__ import annotations

import abc
from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from clinobs.domain.errors import ValidationError
from clinobs.domain.obs import (
    Concept,
    Encounter,
    Location,
    MimeType,
    Obs,
    ObsValue,
    Person,
)
from clinobs.domain.person_type import PersonKind

# --- DTOs ---


class ObsSortKey(Enum):
    """Attributes an observation listing may be ordered by (ascending)."""

    OBS_ID = "obs_id"
    OBS_DATETIME = "obs_datetime"
    DATE_CREATED = "date_created"

    @classmethod
    def from_string(cls, sort: str | None) -> ObsSortKey:
        """Resolve a caller-supplied sort name; blank means `OBS_ID`.

        Both snake_case (``obs_datetime``) and camelCase (``obsDatetime``)
        spellings are accepted.

        Raises:
            ValidationError: If the name is not a sortable attribute.
        """
        if sort is None or not sort.strip():
            return cls.OBS_ID
        normalized = _CAMEL_ALIASES.get(sort.strip(), sort.strip().lower())
        try:
            return cls(normalized)
        except ValueError as e:
            raise ValidationError("sort", f"cannot sort by {sort!r}") from e


_CAMEL_ALIASES = {
    "obsId": "obs_id",
    "obsDatetime": "obs_datetime",
    "dateCreated": "date_created",
}


@dataclass(frozen=True, slots=True)
class NumericAnswer:
    """One row of a numeric-answer report."""

    obs_id: int
    obs_datetime: datetime
    value_numeric: float


# --- Ports ---


class ObsStore(abc.ABC):
    """Persistence port for observations."""

    # --- writes ---

    @abc.abstractmethod
    def add(self, obs: Obs) -> Obs:
        """Insert one observation and return it with its assigned `obs_id`."""

    @abc.abstractmethod
    def add_many(self, observations: Collection[Obs]) -> list[Obs]:
        """Insert several observations, returning them in input order."""

    @abc.abstractmethod
    def update(self, obs: Obs) -> Obs:
        """Overwrite the stored row for `obs.obs_id`.

        Raises:
            ObsNotFoundError: If no observation has that id.
        """

    @abc.abstractmethod
    def delete(self, obs_id: int) -> None:
        """Physically remove an observation.

        Raises:
            ObsNotFoundError: If no observation has that id.
        """

    @abc.abstractmethod
    def allocate_group_id(self) -> int:
        """Reserve and return a new, never-used observation group id."""

    @abc.abstractmethod
    def reserve_group_id(self, obs_group_id: int) -> None:
        """Mark a caller-chosen group id as used.

        Idempotent. Afterwards `allocate_group_id` only returns larger ids.
        """

    # --- single-entity reads ---

    @abc.abstractmethod
    def get(self, obs_id: int) -> Obs | None:
        """Return the observation (voided or not), or None if absent.

        Ids no stored row can carry (outside 1..MAX_ID) are simply absent.
        """

    # --- queries ---

    @abc.abstractmethod
    def list_by_person(self, person: Person) -> list[Obs]:
        """Non-voided observations of one subject."""

    @abc.abstractmethod
    def list_by_encounter(self, encounter: Encounter) -> list[Obs]:
        """Non-voided observations recorded in one encounter."""

    @abc.abstractmethod
    def list_by_group(self, obs_group_id: int) -> list[Obs]:
        """All members of a group, voided included, ascending by id."""

    @abc.abstractmethod
    def list_voided(self) -> list[Obs]:
        """Voided observations, newest `voided_date` first (ties: higher id first)."""

    @abc.abstractmethod
    def list_by_concept(  # pylint: disable=too-many-arguments
        self,
        concept: Concept,
        *,
        location: Location | None = None,
        person: Person | None = None,
        person_kinds: Collection[PersonKind] | None = None,
        sort: ObsSortKey = ObsSortKey.OBS_ID,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Obs]:
        """Non-voided observations of a concept, optionally narrowed.

        Args:
            concept: The question concept.
            location: Only observations made at this location.
            person: Only observations of this subject.
            person_kinds: Only subjects of these kinds (None means any).
            sort: Ordering key; ties always break by `obs_id` in the same direction.
            descending: Reverse the ordering.
            limit: Maximum number of rows to return.
        """

    @abc.abstractmethod
    def list_answered_by(
        self, answer: Concept, person_kinds: Collection[PersonKind] | None = None
    ) -> list[Obs]:
        """Non-voided observations whose coded value is `answer`, ascending by id."""

    @abc.abstractmethod
    def numeric_answers(
        self,
        concept: Concept,
        *,
        sort_by_value: bool,
        person_kinds: Collection[PersonKind] | None = None,
    ) -> list[NumericAnswer]:
        """Numeric values recorded for a concept.

        Ordered ascending by value when `sort_by_value`, otherwise by
        `obs_datetime`; ties break by `obs_id`.
        """

    @abc.abstractmethod
    def search(
        self,
        *,
        obs_id: int | None,
        person_identifier: str,
        include_voided: bool,
        person_kinds: Collection[PersonKind] | None = None,
    ) -> list[Obs]:
        """Observations whose id equals `obs_id` or whose subject identifier
        equals `person_identifier` under `str.casefold`, ascending by id."""

    @abc.abstractmethod
    def distinct_values(
        self, concept: Concept, person_kinds: Collection[PersonKind] | None = None
    ) -> list[ObsValue]:
        """Distinct values recorded for a concept (non-voided observations)."""


class MimeTypeCatalog(abc.ABC):
    """Read-only port for mime types."""

    @abc.abstractmethod
    def get(self, mime_type_id: int) -> MimeType | None:
        """Return the mime type, or None if absent."""

    @abc.abstractmethod
    def list_all(self) -> list[MimeType]:
        """All mime types, ascending by id."""
