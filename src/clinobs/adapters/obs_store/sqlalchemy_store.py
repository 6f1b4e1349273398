"""SQLAlchemy-backed observation store and mime type catalog.

Both adapters operate on a Connection owned by the unit of work; they never
commit. Rows of the ``obs`` table are mapped to and from the immutable `Obs`
entity here, flattening the typed value into the ``value_*`` columns.

SQLAlchemy errors are mapped to CLINOBS persistence errors:

- `IntegrityError` / `DataError` -> `PersistenceError`
- any other `DBAPIError` (operational, interface) -> `StoreUnavailableError`
- `OverflowError` (an int the driver cannot bind) -> `PersistenceError`

Ids outside 1..MAX_ID are never sent to the database: no row can carry them.
"""

from __future__ import annotations

from collections.abc import Collection, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, false, func, insert, or_, select, true, update
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError

from clinobs.domain.errors import (
    ObsNotFoundError,
    PersistenceError,
    StoreUnavailableError,
)
from clinobs.adapters.db.dialects import DialectName
from clinobs.domain.obs import (
    MAX_ID,
    CodedValue,
    ComplexValue,
    Concept,
    Encounter,
    Location,
    MimeType,
    NumericValue,
    Obs,
    ObsValue,
    Person,
    TextValue,
    ValueType,
)
from clinobs.domain.person_type import PersonKind
from clinobs.interfaces.obs_store import (
    MimeTypeCatalog,
    NumericAnswer,
    ObsSortKey,
    ObsStore,
)

from .schema import mime_type, obs_group
from .schema import obs as obs_table

if TYPE_CHECKING:
    from sqlalchemy import RowMapping, Select
    from sqlalchemy.engine import Connection


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy errors as CLINOBS persistence errors."""
    try:
        yield
    except (IntegrityError, DataError) as e:
        raise PersistenceError(str(e.orig or e)) from e
    except OverflowError as e:
        raise PersistenceError(str(e)) from e
    except DBAPIError as e:  # OperationalError, InterfaceError, etc.
        raise StoreUnavailableError(str(e.orig or e)) from e


class SqlAlchemyObsStore(ObsStore):
    """ObsStore over the ``obs`` and ``obs_group`` tables."""

    def __init__(self, connection: Connection):
        self.connection = connection

    # --------------------------------------------------------------------- #
    # Writes
    # --------------------------------------------------------------------- #

    def add(self, obs: Obs) -> Obs:
        with translate_errors():
            obs_id = self.connection.execute(
                insert(obs_table).values(**_to_row(obs)).returning(obs_table.c.obs_id)
            ).scalar_one()
        return replace(obs, obs_id=obs_id)

    def add_many(self, observations: Collection[Obs]) -> list[Obs]:
        # One statement per row keeps the returned ids in input order.
        return [self.add(obs) for obs in observations]

    def update(self, obs: Obs) -> Obs:
        if not _storable_id(obs.obs_id):
            raise ObsNotFoundError(obs.obs_id)
        with translate_errors():
            result = self.connection.execute(
                update(obs_table)
                .where(obs_table.c.obs_id == obs.obs_id)
                .values(**_to_row(obs))
            )
        if result.rowcount == 0:
            raise ObsNotFoundError(obs.obs_id)
        return obs

    def delete(self, obs_id: int) -> None:
        if not _storable_id(obs_id):
            raise ObsNotFoundError(obs_id)
        with translate_errors():
            result = self.connection.execute(
                delete(obs_table).where(obs_table.c.obs_id == obs_id)
            )
        if result.rowcount == 0:
            raise ObsNotFoundError(obs_id)

    def allocate_group_id(self) -> int:
        with translate_errors():
            return self.connection.execute(
                insert(obs_group).returning(obs_group.c.obs_group_id)
            ).scalar_one()

    def reserve_group_id(self, obs_group_id: int) -> None:
        with translate_errors():
            known = self.connection.execute(
                select(obs_group.c.obs_group_id).where(
                    obs_group.c.obs_group_id == obs_group_id
                )
            ).first()
            if known is None:
                self.connection.execute(
                    insert(obs_group).values(obs_group_id=obs_group_id)
                )
            if DialectName.from_sqlalchemy(self.connection) is DialectName.POSTGRES:
                self._advance_group_sequence(obs_group_id)

    # --------------------------------------------------------------------- #
    # Reads
    # --------------------------------------------------------------------- #

    def get(self, obs_id: int) -> Obs | None:
        if not _storable_id(obs_id):
            return None
        rows = self._fetch(select(obs_table).where(obs_table.c.obs_id == obs_id))
        return rows[0] if rows else None

    def list_by_person(self, person: Person) -> list[Obs]:
        return self._fetch(
            _active()
            .where(obs_table.c.person_id == person.person_id)
            .order_by(obs_table.c.obs_id)
        )

    def list_by_encounter(self, encounter: Encounter) -> list[Obs]:
        return self._fetch(
            _active()
            .where(obs_table.c.encounter_id == encounter.encounter_id)
            .order_by(obs_table.c.obs_id)
        )

    def list_by_group(self, obs_group_id: int) -> list[Obs]:
        if not _storable_id(obs_group_id):
            return []
        return self._fetch(
            select(obs_table)
            .where(obs_table.c.obs_group_id == obs_group_id)
            .order_by(obs_table.c.obs_id)
        )

    def list_voided(self) -> list[Obs]:
        return self._fetch(
            select(obs_table)
            .where(obs_table.c.voided == true())
            .order_by(obs_table.c.voided_date.desc(), obs_table.c.obs_id.desc())
        )

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
        stmt = _with_kinds(
            _active().where(obs_table.c.concept_id == concept.concept_id), person_kinds
        )
        if location is not None:
            stmt = stmt.where(obs_table.c.location_id == location.location_id)
        if person is not None:
            stmt = stmt.where(obs_table.c.person_id == person.person_id)

        columns = [obs_table.c[sort.value], obs_table.c.obs_id]
        stmt = stmt.order_by(*(c.desc() if descending else c.asc() for c in columns))
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._fetch(stmt)

    def list_answered_by(
        self, answer: Concept, person_kinds: Collection[PersonKind] | None = None
    ) -> list[Obs]:
        stmt = _active().where(
            obs_table.c.value_type == ValueType.CODED.value,
            obs_table.c.value_coded_id == answer.concept_id,
        )
        return self._fetch(_with_kinds(stmt, person_kinds).order_by(obs_table.c.obs_id))

    def numeric_answers(
        self,
        concept: Concept,
        *,
        sort_by_value: bool,
        person_kinds: Collection[PersonKind] | None = None,
    ) -> list[NumericAnswer]:
        stmt = select(
            obs_table.c.obs_id, obs_table.c.obs_datetime, obs_table.c.value_numeric
        ).where(
            obs_table.c.voided == false(),
            obs_table.c.concept_id == concept.concept_id,
            obs_table.c.value_type == ValueType.NUMERIC.value,
        )
        order = obs_table.c.value_numeric if sort_by_value else obs_table.c.obs_datetime
        stmt = _with_kinds(stmt, person_kinds).order_by(order, obs_table.c.obs_id)
        with translate_errors():
            rows = self.connection.execute(stmt).all()
        return [
            NumericAnswer(row.obs_id, row.obs_datetime, row.value_numeric)
            for row in rows
        ]

    def search(
        self,
        *,
        obs_id: int | None,
        person_identifier: str,
        include_voided: bool,
        person_kinds: Collection[PersonKind] | None = None,
    ) -> list[Obs]:
        folded = obs_table.c.person_identifier_folded
        criteria = [folded == person_identifier.casefold()]
        if _storable_id(obs_id):
            criteria.append(obs_table.c.obs_id == obs_id)

        stmt = select(obs_table) if include_voided else _active()
        stmt = _with_kinds(stmt.where(or_(*criteria)), person_kinds)
        return self._fetch(stmt.order_by(obs_table.c.obs_id))

    def distinct_values(
        self, concept: Concept, person_kinds: Collection[PersonKind] | None = None
    ) -> list[ObsValue]:
        stmt = _with_kinds(
            _active().where(obs_table.c.concept_id == concept.concept_id), person_kinds
        )
        rows = self._fetch(stmt.order_by(obs_table.c.obs_id))
        return list(dict.fromkeys(o.value for o in rows))

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _fetch(self, stmt: Select) -> list[Obs]:
        with translate_errors():
            rows = self.connection.execute(stmt).mappings().all()
        return [_from_row(row) for row in rows]

    def _advance_group_sequence(self, obs_group_id: int) -> None:
        # An explicit id leaves the identity sequence where it was; move it past
        # the reserved id but never backwards.
        sequence = func.pg_get_serial_sequence(obs_group.name, "obs_group_id")
        self.connection.execute(
            select(
                func.setval(
                    sequence, func.greatest(obs_group_id, func.nextval(sequence) - 1)
                )
            )
        )


class SqlAlchemyMimeTypeCatalog(MimeTypeCatalog):
    """MimeTypeCatalog over the ``mime_type`` table."""

    def __init__(self, connection: Connection):
        self.connection = connection

    def get(self, mime_type_id: int) -> MimeType | None:
        with translate_errors():
            row = (
                self.connection.execute(
                    select(mime_type).where(mime_type.c.mime_type_id == mime_type_id)
                )
                .mappings()
                .one_or_none()
            )
        return MimeType(**row) if row else None

    def list_all(self) -> list[MimeType]:
        with translate_errors():
            rows = (
                self.connection.execute(
                    select(mime_type).order_by(mime_type.c.mime_type_id)
                )
                .mappings()
                .all()
            )
        return [MimeType(**row) for row in rows]


# ------------------------------------------------------------------------- #
# Row mapping
# ------------------------------------------------------------------------- #


def _storable_id(value: int | None) -> bool:
    return value is not None and 0 < value <= MAX_ID


def _active() -> Select:
    return select(obs_table).where(obs_table.c.voided == false())


def _with_kinds(stmt: Select, person_kinds: Collection[PersonKind] | None) -> Select:
    if person_kinds is None:
        return stmt
    kinds = [kind.value for kind in person_kinds]
    return stmt.where(obs_table.c.person_kind.in_(kinds))


def _value_columns(value: ObsValue) -> dict[str, Any]:
    columns: dict[str, Any] = {
        "value_type": value.value_type.value,
        "value_coded_id": None,
        "value_coded_name": None,
        "value_numeric": None,
        "value_text": None,
        "value_complex": None,
        "value_mime_type_id": None,
    }
    match value:
        case CodedValue(answer=answer):
            columns["value_coded_id"] = answer.concept_id
            columns["value_coded_name"] = answer.name
        case NumericValue(value=number):
            columns["value_numeric"] = number
        case TextValue(text=text):
            columns["value_text"] = text
        case ComplexValue(mime_type_id=mime_type_id, data=data, title=title):
            columns["value_mime_type_id"] = mime_type_id
            columns["value_complex"] = data
            columns["value_text"] = title
    return columns


def _fold(identifier: str | None) -> str | None:
    return identifier.casefold() if identifier is not None else None


def _to_row(obs: Obs) -> dict[str, Any]:
    return {
        "person_id": obs.person.person_id,
        "person_kind": obs.person.kind.value,
        "person_identifier": obs.person.identifier,
        "person_identifier_folded": _fold(obs.person.identifier),
        "concept_id": obs.concept.concept_id,
        "concept_name": obs.concept.name,
        "encounter_id": obs.encounter.encounter_id if obs.encounter else None,
        "location_id": obs.location.location_id if obs.location else None,
        "obs_datetime": obs.obs_datetime,
        "obs_group_id": obs.obs_group_id,
        "comment": obs.comment,
        "date_created": obs.date_created,
        "voided": obs.voided,
        "void_reason": obs.void_reason,
        "voided_date": obs.voided_date,
        **_value_columns(obs.value),
    }


def _value_from_row(row: RowMapping) -> ObsValue:
    match ValueType(row["value_type"]):
        case ValueType.CODED:
            return CodedValue(
                Concept(row["value_coded_id"], row["value_coded_name"] or "")
            )
        case ValueType.NUMERIC:
            return NumericValue(row["value_numeric"])
        case ValueType.TEXT:
            return TextValue(row["value_text"] or "")
        case ValueType.COMPLEX:
            return ComplexValue(
                row["value_mime_type_id"],
                bytes(row["value_complex"] or b""),
                row["value_text"] or "",
            )


def _from_row(row: RowMapping) -> Obs:
    return Obs(
        obs_id=row["obs_id"],
        person=Person(
            row["person_id"], PersonKind(row["person_kind"]), row["person_identifier"]
        ),
        concept=Concept(row["concept_id"], row["concept_name"]),
        value=_value_from_row(row),
        obs_datetime=row["obs_datetime"],
        location=(
            Location(row["location_id"]) if row["location_id"] is not None else None
        ),
        encounter=(
            Encounter(row["encounter_id"]) if row["encounter_id"] is not None else None
        ),
        obs_group_id=row["obs_group_id"],
        comment=row["comment"],
        date_created=row["date_created"],
        voided=bool(row["voided"]),
        void_reason=row["void_reason"],
        voided_date=row["voided_date"],
    )
