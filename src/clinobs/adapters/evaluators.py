"""Rule-based evaluator for aggregated observation queries.

`RuleEvaluator` understands two descriptor types:

- `Aggregate(kind, count)`: how the selected observations are reduced.
- `Rule(operation, value)`: which observations participate.

Rules compare against each observation's *comparable* value: the number for
numeric values, the answer concept id for coded values, the text for text
values and the title for complex values. Observations whose value cannot be
compared by a rule (e.g. text against a numeric range) simply do not match.

Supported operations:

| Operation        | Rule value                          | Matches when               |
|------------------|-------------------------------------|----------------------------|
| `EQUALITY`       | a scalar (or a `Concept`)           | comparable == value        |
| `IN_RANGE`       | ``{"min": a, "max": b}`` (either optional) | a <= comparable <= b |
| `INTERSECTS_ANY` | a collection of scalars/`Concept`s  | comparable in values       |
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from clinobs.domain.errors import ValidationError
from clinobs.domain.obs import (
    CodedValue,
    ComplexValue,
    Concept,
    NumericValue,
    Obs,
    ObsValue,
    Person,
    TextValue,
)
from clinobs.interfaces.evaluator import Aggregation, Constraint, ObsEvaluator
from clinobs.interfaces.obs_store import ObsSortKey

__all__ = ["Aggregate", "AggregateKind", "Rule", "RuleEvaluator", "RuleOperation"]

logger = logging.getLogger(__name__)

# pylint: disable=too-few-public-methods


class AggregateKind(Enum):
    """How the participating observations are reduced."""

    ALL = "all"
    FIRST = "first"
    LAST = "last"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class Aggregate:
    """Aggregation descriptor.

    `count` bounds the result of FIRST, LAST, MIN and MAX; ALL ignores it.
    FIRST returns the oldest observations oldest-first, LAST the newest
    newest-first, MIN and MAX numeric observations ordered by value.
    """

    kind: AggregateKind = AggregateKind.ALL
    count: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise ValidationError("count", f"expected an int, got {self.count!r}")
        if self.count < 1:
            raise ValidationError("count", "must be at least 1")


class RuleOperation(Enum):
    """Comparison a `Rule` applies."""

    EQUALITY = "equality"
    IN_RANGE = "in_range"
    INTERSECTS_ANY = "intersects_any"


@dataclass(frozen=True)
class Rule:
    """Constraint descriptor: one operation and its operand."""

    operation: RuleOperation
    value: Any

    def matches(self, value: ObsValue) -> bool:
        """Return True if an observation with `value` participates."""
        comparable = _comparable(value)
        match self.operation:
            case RuleOperation.EQUALITY:
                return comparable == _operand(self.value)
            case RuleOperation.IN_RANGE:
                return self._in_range(comparable)
            case RuleOperation.INTERSECTS_ANY:
                return comparable in {_operand(v) for v in self.value}
        raise ValidationError("constraint", f"unsupported operation {self.operation!r}")

    def _in_range(self, comparable: object) -> bool:
        if not isinstance(self.value, Mapping):
            raise ValidationError("constraint", "in_range expects {'min': .., 'max': ..}")
        low, high = self.value.get("min"), self.value.get("max")
        if low is None and high is None:
            raise ValidationError("constraint", "min and max cannot both be None")
        if not isinstance(comparable, float):
            return False
        if low is not None and comparable < low:
            return False
        return high is None or comparable <= high


class RuleEvaluator(ObsEvaluator):
    """Evaluate `Aggregate`/`Rule` descriptors against stored observations.

    Args:
        uow_factory: Returns a fresh unit of work used to read observations.
    """

    def __init__(self, uow_factory):
        self._uow_factory = uow_factory

    def evaluate(
        self,
        person: Person,
        concept: Concept,
        aggregation: Aggregation,
        constraint: Constraint | None,
    ) -> Sequence[Obs]:
        aggregate = self._aggregate(aggregation)
        rule = self._rule(constraint)

        with self._uow_factory() as uow:
            history = uow.obs.list_by_concept(
                concept, person=person, sort=ObsSortKey.OBS_DATETIME
            )

        selected = [o for o in history if rule is None or rule.matches(o.value)]
        logger.debug(
            "Rule %r kept %d of %d observations", rule, len(selected), len(history)
        )
        return _reduce(aggregate, selected)

    @staticmethod
    def _aggregate(aggregation: Aggregation) -> Aggregate:
        if aggregation is None:
            return Aggregate()
        if isinstance(aggregation, AggregateKind):
            return Aggregate(aggregation)
        if isinstance(aggregation, Aggregate):
            return aggregation
        raise ValidationError(
            "aggregation", f"unsupported descriptor {type(aggregation).__name__}"
        )

    @staticmethod
    def _rule(constraint: Constraint | None) -> Rule | None:
        if constraint is None or isinstance(constraint, Rule):
            return constraint
        raise ValidationError(
            "constraint", f"unsupported descriptor {type(constraint).__name__}"
        )


def _reduce(aggregate: Aggregate, selected: list[Obs]) -> list[Obs]:
    """Apply `aggregate` to observations ordered oldest-first."""
    match aggregate.kind:
        case AggregateKind.ALL:
            return selected
        case AggregateKind.FIRST:
            return selected[: aggregate.count]
        case AggregateKind.LAST:
            return selected[::-1][: aggregate.count]
        case AggregateKind.MIN | AggregateKind.MAX:
            numeric = [o for o in selected if isinstance(o.value, NumericValue)]
            ranked = sorted(
                numeric,
                key=lambda o: o.value.value,
                reverse=aggregate.kind is AggregateKind.MAX,
            )
            return ranked[: aggregate.count]
    raise ValidationError("aggregation", f"unsupported kind {aggregate.kind!r}")


def _comparable(value: ObsValue) -> object:
    match value:
        case NumericValue(value=number):
            return number
        case CodedValue(answer=answer):
            return answer.concept_id
        case TextValue(text=text):
            return text
        case ComplexValue(title=title):
            return title
    return None


def _operand(value: Any) -> Any:
    if isinstance(value, Concept):
        return value.concept_id
    return value

