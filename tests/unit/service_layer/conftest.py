"""Pytest fixtures for ObsService unit tests.

The service runs over the in-memory backend with a ticking clock, so every
timestamp it stamps is distinct and predictable.
"""

from __future__ import annotations

from functools import partial

import pytest

from clinobs.adapters.authorization import StaticAuthorizer
from clinobs.adapters.evaluators import RuleEvaluator
from clinobs.adapters.obs_store import InMemoryObsData
from clinobs.adapters.unit_of_work import InMemoryUnitOfWork
from clinobs.interfaces.authorization import VIEW_PERSON
from clinobs.service_layer import ObsService

# pylint: disable=redefined-outer-name


@pytest.fixture
def data() -> InMemoryObsData:
    """The tables behind the service, for direct inspection."""
    return InMemoryObsData()


@pytest.fixture
def privileges() -> set[str]:
    """Privileges held by the caller. Tests can override this fixture."""
    return {VIEW_PERSON}


@pytest.fixture
def service(data, privileges, clock) -> ObsService:
    """An ObsService over `data`, granting `privileges`."""
    uow_factory = partial(InMemoryUnitOfWork, data)
    return ObsService(
        uow_factory=uow_factory,
        evaluator=RuleEvaluator(uow_factory),
        authorizer=StaticAuthorizer(privileges),
        clock=clock,
    )


@pytest.fixture
def new_obs(make_obs):
    """Factory for observations as a caller submits them (not yet stamped)."""

    def _new_obs(**overrides):
        overrides.setdefault("date_created", None)
        return make_obs(**overrides)

    return _new_obs
