"""In-memory observation store and mime type catalog.

All data lives in an `InMemoryObsData` and is lost when it is discarded.
Use for unit tests, prototyping, or scenarios where durability is not
required. Transactions are emulated by `InMemoryUnitOfWork`, which snapshots
the data on entry and restores the snapshot on rollback.

Note: not thread-safe; intended for single-threaded use.

This implementation passes all contract tests for the ObsStore interface.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field, replace

from clinobs.domain.errors import ObsNotFoundError
from clinobs.domain.obs import (
    CodedValue,
    Concept,
    Encounter,
    Location,
    MimeType,
    NumericValue,
    Obs,
    ObsValue,
    Person,
)
from clinobs.domain.person_type import PersonKind
from clinobs.interfaces.obs_store import (
    MimeTypeCatalog,
    NumericAnswer,
    ObsSortKey,
    ObsStore,
)

from .seed import DEFAULT_MIME_TYPES

_SORT_ATTRIBUTES: dict[ObsSortKey, Callable[[Obs], object]] = {
    ObsSortKey.OBS_ID: operator.attrgetter("obs_id"),
    ObsSortKey.OBS_DATETIME: operator.attrgetter("obs_datetime"),
    ObsSortKey.DATE_CREATED: operator.attrgetter("date_created"),
}


@dataclass
class InMemoryObsData:
    """The tables of the in-memory backend."""

    observations: dict[int, Obs] = field(default_factory=dict)
    mime_types: dict[int, MimeType] = field(
        default_factory=lambda: {m.mime_type_id: m for m in DEFAULT_MIME_TYPES}
    )
    last_obs_id: int = 0
    last_group_id: int = 0

    def snapshot(self) -> InMemoryObsData:
        """Return an independent copy of the current state."""
        # Obs is immutable, so copying the dicts is enough.
        return InMemoryObsData(
            observations=dict(self.observations),
            mime_types=dict(self.mime_types),
            last_obs_id=self.last_obs_id,
            last_group_id=self.last_group_id,
        )

    def restore(self, snapshot: InMemoryObsData) -> None:
        """Replace the current state with `snapshot`."""
        self.observations = dict(snapshot.observations)
        self.mime_types = dict(snapshot.mime_types)
        self.last_obs_id = snapshot.last_obs_id
        self.last_group_id = snapshot.last_group_id


class InMemoryObsStore(ObsStore):
    """ObsStore backed by an `InMemoryObsData`."""

    def __init__(self, data: InMemoryObsData):
        self.data = data

    # --- writes ---

    def add(self, obs: Obs) -> Obs:
        self.data.last_obs_id += 1
        persisted = replace(obs, obs_id=self.data.last_obs_id)
        self.data.observations[persisted.obs_id] = persisted
        return persisted

    def add_many(self, observations: Collection[Obs]) -> list[Obs]:
        return [self.add(obs) for obs in observations]

    def update(self, obs: Obs) -> Obs:
        if obs.obs_id not in self.data.observations:
            raise ObsNotFoundError(obs.obs_id)
        self.data.observations[obs.obs_id] = obs
        return obs

    def delete(self, obs_id: int) -> None:
        if self.data.observations.pop(obs_id, None) is None:
            raise ObsNotFoundError(obs_id)

    def allocate_group_id(self) -> int:
        self.data.last_group_id += 1
        return self.data.last_group_id

    def reserve_group_id(self, obs_group_id: int) -> None:
        self.data.last_group_id = max(self.data.last_group_id, obs_group_id)

    # --- single-entity reads ---

    def get(self, obs_id: int) -> Obs | None:
        return self.data.observations.get(obs_id)

    # --- queries ---

    def list_by_person(self, person: Person) -> list[Obs]:
        return self._select(lambda o: o.person.person_id == person.person_id)

    def list_by_encounter(self, encounter: Encounter) -> list[Obs]:
        return self._select(
            lambda o: o.encounter is not None
            and o.encounter.encounter_id == encounter.encounter_id
        )

    def list_by_group(self, obs_group_id: int) -> list[Obs]:
        return self._select(
            lambda o: o.obs_group_id == obs_group_id, include_voided=True
        )

    def list_voided(self) -> list[Obs]:
        voided = [o for o in self.data.observations.values() if o.voided]
        return sorted(voided, key=lambda o: (o.voided_date, o.obs_id), reverse=True)

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
        def wanted(o: Obs) -> bool:
            if o.concept.concept_id != concept.concept_id:
                return False
            if location is not None and (
                o.location is None or o.location.location_id != location.location_id
            ):
                return False
            if person is not None and o.person.person_id != person.person_id:
                return False
            return _kind_matches(o, person_kinds)

        attribute = _SORT_ATTRIBUTES[sort]
        rows = sorted(
            self._select(wanted),
            key=lambda o: (attribute(o), o.obs_id),
            reverse=descending,
        )
        return rows if limit is None else rows[:limit]

    def list_answered_by(
        self, answer: Concept, person_kinds: Collection[PersonKind] | None = None
    ) -> list[Obs]:
        return self._select(
            lambda o: isinstance(o.value, CodedValue)
            and o.value.answer.concept_id == answer.concept_id
            and _kind_matches(o, person_kinds)
        )

    def numeric_answers(
        self,
        concept: Concept,
        *,
        sort_by_value: bool,
        person_kinds: Collection[PersonKind] | None = None,
    ) -> list[NumericAnswer]:
        answers = [
            NumericAnswer(o.obs_id, o.obs_datetime, o.value.value)
            for o in self._select(
                lambda o: o.concept.concept_id == concept.concept_id
                and isinstance(o.value, NumericValue)
                and _kind_matches(o, person_kinds)
            )
        ]
        if sort_by_value:
            return sorted(answers, key=lambda a: (a.value_numeric, a.obs_id))
        return sorted(answers, key=lambda a: (a.obs_datetime, a.obs_id))

    def search(
        self,
        *,
        obs_id: int | None,
        person_identifier: str,
        include_voided: bool,
        person_kinds: Collection[PersonKind] | None = None,
    ) -> list[Obs]:
        identifier = person_identifier.casefold()

        def wanted(o: Obs) -> bool:
            hit = (obs_id is not None and o.obs_id == obs_id) or (
                o.person.identifier is not None
                and o.person.identifier.casefold() == identifier
            )
            return hit and _kind_matches(o, person_kinds)

        return self._select(wanted, include_voided=include_voided)

    def distinct_values(
        self, concept: Concept, person_kinds: Collection[PersonKind] | None = None
    ) -> list[ObsValue]:
        values: Iterable[ObsValue] = (
            o.value
            for o in self._select(
                lambda o: o.concept.concept_id == concept.concept_id
                and _kind_matches(o, person_kinds)
            )
        )
        return list(dict.fromkeys(values))

    # --- internals ---

    def _select(
        self, predicate: Callable[[Obs], bool], include_voided: bool = False
    ) -> list[Obs]:
        """Matching observations, ascending by id."""
        return [
            o
            for _, o in sorted(self.data.observations.items())
            if (include_voided or not o.voided) and predicate(o)
        ]


class InMemoryMimeTypeCatalog(MimeTypeCatalog):
    """MimeTypeCatalog backed by an `InMemoryObsData`."""

    def __init__(self, data: InMemoryObsData):
        self.data = data

    def get(self, mime_type_id: int) -> MimeType | None:
        return self.data.mime_types.get(mime_type_id)

    def list_all(self) -> list[MimeType]:
        return [m for _, m in sorted(self.data.mime_types.items())]


def _kind_matches(obs: Obs, person_kinds: Collection[PersonKind] | None) -> bool:
    return person_kinds is None or obs.person.kind in person_kinds
