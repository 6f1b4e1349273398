"""Interface for evaluating aggregation/constraint queries over observations.

The service layer treats the aggregation and constraint descriptors as opaque
values: it checks authorization and forwards them, together with the subject
and the concept, to an `ObsEvaluator`. Which descriptor types an evaluator
understands is entirely up to the implementation.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence
from typing import Any, TypeAlias

from clinobs.domain.obs import Concept, Obs, Person

# pylint: disable=too-few-public-methods

#: How observations are combined/reduced (opaque to the service layer).
Aggregation: TypeAlias = Any

#: Which observations participate (opaque to the service layer).
Constraint: TypeAlias = Any


class ObsEvaluator(abc.ABC):
    """Contract for an aggregation/constraint evaluator."""

    @abc.abstractmethod
    def evaluate(
        self,
        person: Person,
        concept: Concept,
        aggregation: Aggregation,
        constraint: Constraint | None,
    ) -> Sequence[Obs]:
        """Return the observations selected by the descriptors.

        Args:
            person: The subject whose observations are considered.
            concept: The question concept.
            aggregation: Descriptor of how to combine the observations.
            constraint: Descriptor restricting which observations participate,
                or None for no restriction.

        Returns:
            The resulting observations, in the order the evaluator defines.
        """
