"""Assemble the observation service from configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from clinobs import config
from clinobs.adapters.authorization import StaticAuthorizer
from clinobs.adapters.db.engine import make_engine
from clinobs.adapters.evaluators import RuleEvaluator
from clinobs.adapters.obs_store import InMemoryObsData
from clinobs.adapters.unit_of_work import InMemoryUnitOfWork, SqlAlchemyUnitOfWork
from clinobs.interfaces.authorization import Authorizer
from clinobs.interfaces.unit_of_work import AbstractUnitOfWork
from clinobs.service_layer import ObsService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContainer:
    """A class to hold application wiring constants."""

    obs_service: ObsService


def build_uow_factory(url: str) -> Callable[[], AbstractUnitOfWork]:
    """Return a factory of SQLAlchemy units of work sharing one engine."""
    engine = make_engine(url)
    return partial(SqlAlchemyUnitOfWork, engine)


def build_obs_service(
    uow_factory: Callable[[], AbstractUnitOfWork], authorizer: Authorizer
) -> ObsService:
    """Build the service with the reference evaluator over the same storage."""
    return ObsService(
        uow_factory=uow_factory,
        evaluator=RuleEvaluator(uow_factory),
        authorizer=authorizer,
    )


def bootstrap(
    url: str | None = None, authorizer: Authorizer | None = None
) -> AppContainer:
    """Wire the application against a database.

    Args:
        url: Database URL; defaults to `CLINOBS_DB_URL`.
        authorizer: Privilege check; defaults to a `StaticAuthorizer` granting
            the privileges listed in `CLINOBS_PRIVILEGES`.

    Raises:
        DatabaseUrlNotSetError: If no URL is given and `CLINOBS_DB_URL` is unset.
    """
    if authorizer is None:
        authorizer = StaticAuthorizer(config.get_privileges())
    uow_factory = build_uow_factory(url or config.get_db_url())
    logger.debug("Bootstrapped ObsService with %s", type(authorizer).__name__)
    return AppContainer(obs_service=build_obs_service(uow_factory, authorizer))


def build_in_memory_service(
    authorizer: Authorizer | None = None, data: InMemoryObsData | None = None
) -> ObsService:
    """Wire a non-durable service, for demos and tests."""
    shared = data if data is not None else InMemoryObsData()
    return build_obs_service(
        partial(InMemoryUnitOfWork, shared),
        authorizer if authorizer is not None else StaticAuthorizer(),
    )
