"""Subject kinds and the person-type selector used to narrow queries.

An observation's subject is exactly one `PersonKind`. Queries accept a
`PersonType` flag set: every set bit admits one subject kind, bits combine
(``PATIENT | USER`` admits patients and users), and the empty set (``ANY``)
admits every kind.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum, Flag

from .errors import ValidationError


class PersonKind(Enum):
    """Runtime kind of an observation subject."""

    PERSON = "person"
    PATIENT = "patient"
    USER = "user"

    @property
    def flag(self) -> PersonType:
        """The single `PersonType` bit that selects this kind."""
        return PersonType[self.name]


class PersonType(Flag):
    """Combinable selector over subject kinds.

    The integer values match the historical constants (PERSON=1, PATIENT=2,
    USER=4) so masks coming from older callers keep their meaning.
    """

    ANY = 0
    PERSON = 1
    PATIENT = 2
    USER = 4

    @classmethod
    def coerce(
        cls, value: PersonType | int | Iterable[PersonKind] | None
    ) -> PersonType:
        """Normalize a mask given as a flag, an int, an iterable of kinds, or None.

        Args:
            value: The mask. ``None``, ``0`` and an empty iterable all mean
                "any kind".

        Returns:
            The equivalent `PersonType`.

        Raises:
            ValidationError: If an int mask has bits outside PERSON|PATIENT|USER,
                or an iterable holds something other than `PersonKind` members.
        """
        if value is None:
            return cls.ANY
        if isinstance(value, cls):
            return value
        if isinstance(value, (bool, str, bytes)):
            raise ValidationError("person_type", f"expected a mask, got {value!r}")
        if isinstance(value, Iterable):
            return cls._from_kinds(value)
        if not isinstance(value, int):
            raise ValidationError("person_type", f"expected a mask, got {value!r}")
        all_bits = (cls.PERSON | cls.PATIENT | cls.USER).value
        if value < 0 or value & ~all_bits:
            raise ValidationError("person_type", f"unknown bits in mask {value}")
        return cls(value)

    @classmethod
    def _from_kinds(cls, kinds: Iterable[object]) -> PersonType:
        mask = cls.ANY
        for kind in kinds:
            if not isinstance(kind, PersonKind):
                raise ValidationError("person_type", f"not a subject kind: {kind!r}")
            mask |= kind.flag
        return mask

    def matches(self, kind: PersonKind) -> bool:
        """Return True if a subject of `kind` passes this mask."""
        if not self:
            return True
        return kind.flag in self

    def kinds(self) -> tuple[PersonKind, ...]:
        """The subject kinds admitted by this mask, in declaration order."""
        return tuple(kind for kind in PersonKind if self.matches(kind))
