"""The observation service: lifecycle rules and the query surface.

`ObsService` is the single entrypoint to the service layer. It enforces the
domain invariants (required fields, void versus delete, group linkage) and
delegates persistence to a unit of work, semantic filtering to an
`ObsEvaluator`, and capability checks to an `Authorizer`.

Every operation opens its own unit of work from the injected factory, so the
service holds no mutable state and independent callers never share a
transaction. Writes commit explicitly; any exception rolls the unit back.

Lifecycle:

    [created] --update*--> [created] --void_obs--> [voided] --unvoid_obs--> [created]
    [created|voided] --delete_obs--> [destroyed]

`delete_obs` bypasses the audit trail and is reserved for administrative
maintenance; ordinary workflows must use `void_obs`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import TypeAlias

from clinobs.domain.errors import (
    AuthorizationError,
    MimeTypeNotFoundError,
    ObsNotFoundError,
    PersistenceError,
    ValidationError,
)
from clinobs.domain.obs import (
    MAX_ID,
    ComplexValue,
    Concept,
    Encounter,
    Location,
    MimeType,
    Obs,
    Person,
)
from clinobs.domain.person_type import PersonKind, PersonType
from clinobs.interfaces.authorization import VIEW_PERSON, Authorizer
from clinobs.interfaces.evaluator import Aggregation, Constraint, ObsEvaluator
from clinobs.interfaces.obs_store import NumericAnswer, ObsSortKey
from clinobs.interfaces.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

# pylint: disable=too-many-public-methods

Clock: TypeAlias = Callable[[], datetime]
UnitOfWorkFactory: TypeAlias = Callable[[], AbstractUnitOfWork]
PersonTypeMask: TypeAlias = PersonType | int | Iterable[PersonKind] | None


def utc_now() -> datetime:
    """Default clock: the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ObsService:
    """Lifecycle and query operations over observations.

    Args:
        uow_factory: Returns a fresh unit of work for each operation.
        evaluator: Evaluates aggregation/constraint queries.
        authorizer: Checks the caller's privileges.
        clock: Source of creation and void timestamps (aware UTC).
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        evaluator: ObsEvaluator,
        authorizer: Authorizer,
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = uow_factory
        self._evaluator = evaluator
        self._authorizer = authorizer
        self._clock = clock

    # ========================================================================
    #                               Creation
    # ========================================================================

    def create_obs(self, obs: Obs) -> Obs:
        """Persist a new observation.

        Returns:
            The persisted observation with its assigned `obs_id` and `date_created`.

        Raises:
            ValidationError: If subject, concept, or value is missing, the
                observation was already persisted, or a complex value names an
                unknown mime type.
            PersistenceError: If storage rejects the write.
        """
        self._check_new(obs)
        with self._unit_of_work("create_obs") as uow:
            self._check_mime_type(uow, obs)
            persisted = uow.obs.add(self._stamp_created(obs, self._clock()))
            uow.commit()

        logger.info(
            "Created obs %s (concept %s, person %s)",
            persisted.obs_id,
            persisted.concept.concept_id,
            persisted.person.person_id,
        )
        return persisted

    def create_obs_group(self, obs_list: Iterable[Obs]) -> list[Obs]:
        """Persist observations that form one group, atomically.

        When no member carries a group id a new one is allocated; otherwise the
        members' shared id is used and reserved, so later allocations never
        hand it out again. Either way every member is stamped with it.

        Returns:
            The persisted members, in input order.

        Raises:
            ValidationError: If the collection is empty, a member is invalid,
                members carry different group ids, or the shared id is out of
                BIGINT range.
            PersistenceError: If storage rejects the write (nothing is persisted).
        """
        members = list(obs_list)
        if not members:
            raise ValidationError("obs_list", "a group needs at least one observation")
        for obs in members:
            self._check_new(obs)

        preset = {obs.obs_group_id for obs in members if obs.obs_group_id is not None}
        if len(preset) > 1:
            raise ValidationError(
                "obs_group_id", f"members disagree on the group id {sorted(preset)}"
            )
        if preset and not 0 < min(preset) <= MAX_ID:
            raise ValidationError("obs_group_id", f"out of range: {min(preset)}")

        now = self._clock()
        with self._unit_of_work("create_obs_group") as uow:
            for obs in members:
                self._check_mime_type(uow, obs)
            if preset:
                group_id = preset.pop()
                uow.obs.reserve_group_id(group_id)
            else:
                group_id = uow.obs.allocate_group_id()
            persisted = uow.obs.add_many(
                [
                    replace(self._stamp_created(obs, now), obs_group_id=group_id)
                    for obs in members
                ]
            )
            uow.commit()

        logger.info("Created obs group %s with %d members", group_id, len(persisted))
        return persisted

    # ========================================================================
    #                               Retrieval
    # ========================================================================

    def get_obs(self, obs_id: int) -> Obs:
        """Return an observation by id, voided or not.

        Raises:
            ObsNotFoundError: If the id does not exist.
        """
        with self._unit_of_work("get_obs") as uow:
            obs = uow.obs.get(obs_id)
        if obs is None:
            raise ObsNotFoundError(obs_id)
        return obs

    def get_mime_types(self) -> list[MimeType]:
        """Return every mime type, ascending by id."""
        with self._unit_of_work("get_mime_types") as uow:
            return uow.mime_types.list_all()

    def get_mime_type(self, mime_type_id: int) -> MimeType:
        """Return a mime type by id.

        Raises:
            MimeTypeNotFoundError: If the id does not exist.
        """
        with self._unit_of_work("get_mime_type") as uow:
            mime_type = uow.mime_types.get(mime_type_id)
        if mime_type is None:
            raise MimeTypeNotFoundError(mime_type_id)
        return mime_type

    # ========================================================================
    #                               Mutation
    # ========================================================================

    def update_obs(self, obs: Obs) -> Obs:
        """Persist changes to an existing observation.

        Lifecycle fields and `date_created` are kept from the stored row; use
        `void_obs`/`unvoid_obs` to move the lifecycle.

        Raises:
            ValidationError: If `obs_id` or a required field is missing.
            ObsNotFoundError: If the id does not exist.
        """
        obs_id = self._require_id(obs)
        self._check_required(obs)
        with self._unit_of_work("update_obs") as uow:
            stored = self._get_stored(uow, obs_id)
            self._check_mime_type(uow, obs)
            updated = uow.obs.update(
                replace(
                    obs,
                    obs_datetime=obs.obs_datetime or stored.obs_datetime,
                    date_created=stored.date_created,
                    voided=stored.voided,
                    void_reason=stored.void_reason,
                    voided_date=stored.voided_date,
                )
            )
            uow.commit()

        logger.info("Updated obs %s", obs_id)
        return updated

    def void_obs(self, obs: Obs, reason: str) -> Obs:
        """Soft-delete an observation, keeping it for the audit trail.

        Voiding an already voided observation succeeds and overwrites the
        reason and the timestamp.

        Raises:
            ValidationError: If the reason is blank or `obs_id` is missing.
            ObsNotFoundError: If the id does not exist.
        """
        if reason is None or not reason.strip():
            raise ValidationError("reason", "a void reason is required")
        obs_id = self._require_id(obs)
        with self._unit_of_work("void_obs") as uow:
            stored = self._get_stored(uow, obs_id)
            if stored.voided:
                logger.debug("Obs %s already voided; overwriting reason", obs_id)
            voided = uow.obs.update(stored.mark_voided(reason.strip(), self._clock()))
            uow.commit()

        logger.info("Voided obs %s: %s", obs_id, voided.void_reason)
        return voided

    def unvoid_obs(self, obs: Obs) -> Obs:
        """Restore a voided observation; a no-op if it is not voided.

        Raises:
            ValidationError: If `obs_id` is missing.
            ObsNotFoundError: If the id does not exist.
        """
        obs_id = self._require_id(obs)
        with self._unit_of_work("unvoid_obs") as uow:
            stored = self._get_stored(uow, obs_id)
            if not stored.voided:
                logger.debug("Obs %s is not voided; noop", obs_id)
                return stored
            restored = uow.obs.update(stored.mark_unvoided())
            uow.commit()

        logger.info("Unvoided obs %s", obs_id)
        return restored

    def delete_obs(self, obs: Obs) -> None:
        """Physically remove an observation. Administrative use only.

        This bypasses the audit trail; ordinary callers must use `void_obs`.

        Raises:
            ValidationError: If `obs_id` is missing.
            ObsNotFoundError: If the id does not exist (e.g. already deleted).
        """
        obs_id = self._require_id(obs)
        with self._unit_of_work("delete_obs") as uow:
            uow.obs.delete(obs_id)
            uow.commit()

        logger.warning("Deleted obs %s permanently; audit trail bypassed", obs_id)

    # ========================================================================
    #                             Query surface
    # ========================================================================

    def get_observations_by_person(self, person: Person) -> set[Obs]:
        """All non-voided observations of a subject."""
        self._require("person", person)
        with self._unit_of_work("get_observations_by_person") as uow:
            return set(uow.obs.list_by_person(person))

    def get_observations_by_concept_and_location(
        self,
        concept: Concept,
        location: Location,
        sort: str | None = None,
        person_type: PersonTypeMask = None,
    ) -> list[Obs]:
        """Non-voided observations of a concept made at a location.

        Args:
            concept: The question concept.
            location: Where the observations were made.
            sort: Attribute to order by ascending; defaults to `obs_id`.
            person_type: Subject-kind mask; empty means any kind.
        """
        self._require("concept", concept)
        self._require("location", location)
        sort_key = ObsSortKey.from_string(sort)
        kinds = self._kinds(person_type)
        with self._unit_of_work("get_observations_by_concept_and_location") as uow:
            return uow.obs.list_by_concept(
                concept, location=location, person_kinds=kinds, sort=sort_key
            )

    def get_observations_by_person_and_concept(
        self, person: Person, concept: Concept
    ) -> set[Obs]:
        """Non-voided observations of a subject for one concept (e.g. all CD4 counts)."""
        self._require("person", person)
        self._require("concept", concept)
        with self._unit_of_work("get_observations_by_person_and_concept") as uow:
            return set(uow.obs.list_by_concept(concept, person=person))

    def get_last_n_observations(
        self, n: int, person: Person, concept: Concept
    ) -> list[Obs]:
        """The `n` most recent observations of a subject for a concept, newest first.

        Raises:
            ValidationError: If `n` is negative.
        """
        if n is None or n < 0:
            raise ValidationError("n", f"must be a non-negative count, got {n!r}")
        self._require("person", person)
        self._require("concept", concept)
        if n == 0:
            return []
        with self._unit_of_work("get_last_n_observations") as uow:
            return uow.obs.list_by_concept(
                concept,
                person=person,
                sort=ObsSortKey.OBS_DATETIME,
                descending=True,
                limit=n,
            )

    def get_observations_by_concept(
        self,
        concept: Concept,
        sort: str | None = None,
        person_type: PersonTypeMask = None,
    ) -> list[Obs]:
        """Non-voided observations of a concept across all subjects.

        Args:
            concept: The question concept (e.g. RETURN VISIT DATE).
            sort: Attribute to order by ascending; defaults to `obs_id`.
            person_type: Subject-kind mask; empty means any kind.
        """
        self._require("concept", concept)
        sort_key = ObsSortKey.from_string(sort)
        kinds = self._kinds(person_type)
        with self._unit_of_work("get_observations_by_concept") as uow:
            return uow.obs.list_by_concept(concept, person_kinds=kinds, sort=sort_key)

    def get_observations_answered_by_concept(
        self, answer: Concept, person_type: PersonTypeMask = None
    ) -> list[Obs]:
        """Non-voided observations whose coded value is `answer`."""
        self._require("answer", answer)
        kinds = self._kinds(person_type)
        with self._unit_of_work("get_observations_answered_by_concept") as uow:
            return uow.obs.list_answered_by(answer, kinds)

    def get_numeric_answers_for_concept(
        self,
        concept: Concept,
        sort_by_value: bool,
        person_type: PersonTypeMask = None,
    ) -> list[NumericAnswer]:
        """Numeric values recorded for a concept.

        Ordered ascending by value when `sort_by_value` is true, otherwise by
        observation time.
        """
        self._require("concept", concept)
        kinds = self._kinds(person_type)
        with self._unit_of_work("get_numeric_answers_for_concept") as uow:
            return uow.obs.numeric_answers(
                concept, sort_by_value=bool(sort_by_value), person_kinds=kinds
            )

    def get_observations_by_encounter(self, encounter: Encounter) -> set[Obs]:
        """Non-voided observations recorded during an encounter."""
        self._require("encounter", encounter)
        with self._unit_of_work("get_observations_by_encounter") as uow:
            return set(uow.obs.list_by_encounter(encounter))

    def get_voided_observations(self) -> list[Obs]:
        """Voided observations, most recently voided first."""
        with self._unit_of_work("get_voided_observations") as uow:
            return uow.obs.list_voided()

    def find_observations(
        self,
        search: str,
        include_voided: bool = False,
        person_type: PersonTypeMask = None,
    ) -> list[Obs]:
        """Find observations by obs id or by the subject's identifier.

        Matching rule: the search string is stripped; a blank search matches
        nothing. An all-digit search that fits a BIGINT matches the observation
        with that id. Any search also matches observations whose subject
        identifier equals it, ignoring case (Unicode case folding). There is
        no partial or fuzzy matching.
        """
        term = (search or "").strip()
        if not term:
            return []
        obs_id = _as_obs_id(term)
        kinds = self._kinds(person_type)
        logger.debug("Searching obs for %r (obs_id=%s)", term, obs_id)
        with self._unit_of_work("find_observations") as uow:
            return uow.obs.search(
                obs_id=obs_id,
                person_identifier=term,
                include_voided=include_voided,
                person_kinds=kinds,
            )

    def get_distinct_observation_values(
        self, concept: Concept, person_type: PersonTypeMask = None
    ) -> list[str]:
        """The distinct values recorded for a concept, rendered as strings."""
        self._require("concept", concept)
        kinds = self._kinds(person_type)
        with self._unit_of_work("get_distinct_observation_values") as uow:
            values = uow.obs.distinct_values(concept, kinds)
        return list(dict.fromkeys(value.as_string() for value in values))

    def find_obs_by_group_id(self, obs_group_id: int) -> list[Obs]:
        """Every member of a group (voided members included), ascending by id."""
        with self._unit_of_work("find_obs_by_group_id") as uow:
            return uow.obs.list_by_group(obs_group_id)

    def get_aggregated_observations(
        self,
        person: Person,
        aggregation: Aggregation,
        concept: Concept,
        constraint: Constraint | None = None,
    ) -> list[Obs]:
        """Observations of a subject for a concept, reduced by the evaluator.

        The aggregation and constraint descriptors are forwarded untouched.

        Raises:
            AuthorizationError: If the caller lacks the "View Person" privilege.
        """
        if not self._authorizer.has_privilege(VIEW_PERSON):
            logger.warning(
                "Aggregated obs query for person %s denied: %s required",
                getattr(person, "person_id", None),
                VIEW_PERSON,
            )
            raise AuthorizationError(VIEW_PERSON)
        self._require("person", person)
        self._require("concept", concept)
        logger.debug(
            "Evaluating %r / %r for person %s, concept %s",
            aggregation,
            constraint,
            person.person_id,
            concept.concept_id,
        )
        return list(self._evaluator.evaluate(person, concept, aggregation, constraint))

    # ========================================================================
    #                               Internals
    # ========================================================================

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[AbstractUnitOfWork]:
        """Open a unit of work, logging storage failures before re-raising."""
        try:
            with self._uow_factory() as uow:
                yield uow
        except PersistenceError:
            logger.exception("Storage failure during %s", operation)
            raise

    @staticmethod
    def _require(field: str, value: object) -> None:
        if value is None:
            raise ValidationError(field, "is required")

    @classmethod
    def _check_required(cls, obs: Obs) -> None:
        cls._require("obs", obs)
        cls._require("person", obs.person)
        cls._require("concept", obs.concept)
        cls._require("value", obs.value)

    @classmethod
    def _check_new(cls, obs: Obs) -> None:
        cls._check_required(obs)
        if obs.obs_id is not None:
            raise ValidationError("obs_id", f"observation already persisted as {obs.obs_id}")
        if obs.voided:
            raise ValidationError("voided", "a new observation cannot be voided")

    @classmethod
    def _require_id(cls, obs: Obs) -> int:
        cls._require("obs", obs)
        if obs.obs_id is None:
            raise ValidationError("obs_id", "the observation has not been persisted")
        return obs.obs_id

    @staticmethod
    def _get_stored(uow: AbstractUnitOfWork, obs_id: int) -> Obs:
        if (stored := uow.obs.get(obs_id)) is None:
            raise ObsNotFoundError(obs_id)
        return stored

    @staticmethod
    def _check_mime_type(uow: AbstractUnitOfWork, obs: Obs) -> None:
        if not isinstance(obs.value, ComplexValue):
            return
        if uow.mime_types.get(obs.value.mime_type_id) is None:
            raise ValidationError(
                "value", f"unknown mime type {obs.value.mime_type_id}"
            )

    @staticmethod
    def _stamp_created(obs: Obs, now: datetime) -> Obs:
        return replace(obs, date_created=now, obs_datetime=obs.obs_datetime or now)

    @staticmethod
    def _kinds(person_type: PersonTypeMask) -> tuple[PersonKind, ...] | None:
        mask = PersonType.coerce(person_type)
        return mask.kinds() if mask else None


def _as_obs_id(term: str) -> int | None:
    """The obs id an all-digit search term names, if a stored row could carry it."""
    if not (term.isascii() and term.isdigit()):
        return None
    value = int(term)
    return value if 0 < value <= MAX_ID else None
