"""``clinobs obs``: operator commands over stored observations.

Listings go to stdout, one observation per line, so they can be piped.
Status lines go to stderr. Service errors are reported as ``ClickException``s
with the error's message and a non-zero exit code.

The service is taken from an `AppContainer` placed on the Click context
(``obj=``), or bootstrapped from ``CLINOBS_DB_URL`` / ``CLINOBS_PRIVILEGES``.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, ParamSpec, TypeVar

import click
import click_extra as clickx

from clinobs import config
from clinobs.bootstrap import AppContainer, bootstrap
from clinobs.domain.errors import ObsError
from clinobs.domain.person_type import PersonKind

from .db import MISSING_DB_URL_MSG
from .helpers import success, warn

if TYPE_CHECKING:
    from clinobs.domain.obs import Obs
    from clinobs.service_layer import ObsService

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

DELETE_WARNING = (
    "Deleting removes the observation permanently and bypasses the audit trail.\n"
    "Use 'clinobs obs void' for ordinary corrections."
)


def _service() -> ObsService:
    ctx = click.get_current_context()
    if (container := ctx.find_object(AppContainer)) is None:
        try:
            container = bootstrap()
        except config.DatabaseUrlNotSetError as e:
            raise click.ClickException(MISSING_DB_URL_MSG) from e
    return container.obs_service


def reports_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Turn service errors into ClickExceptions carrying their message."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except ObsError as e:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(str(e)) from e

    return wrapper


def format_obs(observation: Obs) -> str:
    """One-line, tab-separated rendering of an observation."""
    fields = [
        str(observation.obs_id),
        observation.obs_datetime.isoformat() if observation.obs_datetime else "-",
        f"person={observation.person.person_id}",
        f"concept={observation.concept.name or observation.concept.concept_id}",
        f"value={observation.value.as_string()}",
    ]
    if observation.obs_group_id is not None:
        fields.append(f"group={observation.obs_group_id}")
    if observation.voided:
        fields.append(f"voided={observation.void_reason}")
    return "\t".join(fields)


def _echo_all(observations: Iterable[Obs]) -> None:
    for observation in observations:
        click.echo(format_obs(observation))


@click.group(cls=clickx.ExtraGroup)
def obs() -> None:
    """Inspect and maintain stored observations."""


@obs.command()
@click.argument("obs_id", type=int)
@reports_errors
def show(obs_id: int) -> None:
    """Show one observation, voided or not."""
    found = _service().get_obs(obs_id)
    rows = {
        "obs_id": found.obs_id,
        "person": f"{found.person.person_id} ({found.person.kind.value})",
        "identifier": found.person.identifier or "-",
        "concept": f"{found.concept.concept_id} {found.concept.name}".strip(),
        "value_type": found.value_type.value,
        "value": found.value.as_string(),
        "obs_datetime": found.obs_datetime.isoformat(),
        "encounter": found.encounter.encounter_id if found.encounter else "-",
        "location": found.location.location_id if found.location else "-",
        "obs_group_id": found.obs_group_id or "-",
        "comment": found.comment or "-",
        "date_created": found.date_created.isoformat() if found.date_created else "-",
        "voided": "yes" if found.voided else "no",
    }
    if found.voided:
        rows["void_reason"] = found.void_reason
        rows["voided_date"] = found.voided_date.isoformat()
    width = max(len(key) for key in rows)
    for key, value in rows.items():
        click.echo(f"{key:<{width}} : {value}")


@obs.command()
@click.argument("obs_id", type=int)
@click.option("--reason", "-r", required=True, help="Why the observation is voided.")
@reports_errors
def void(obs_id: int, reason: str) -> None:
    """Void (soft-delete) an observation."""
    service = _service()
    result = service.void_obs(service.get_obs(obs_id), reason)
    success(f"Voided obs {result.obs_id}: {result.void_reason}")


@obs.command()
@click.argument("obs_id", type=int)
@reports_errors
def unvoid(obs_id: int) -> None:
    """Restore a voided observation."""
    service = _service()
    service.unvoid_obs(service.get_obs(obs_id))
    success(f"Unvoided obs {obs_id}")


@obs.command()
@click.argument("obs_id", type=int)
@click.option("--force", is_flag=True, help="Delete without confirmation.")
@reports_errors
def delete(obs_id: int, force: bool) -> None:
    """Permanently delete an observation (administrative use only)."""
    service = _service()
    target = service.get_obs(obs_id)
    if not force:
        warn(DELETE_WARNING)
        click.echo(format_obs(target), err=True)
        click.confirm("Are you sure you want to proceed?", abort=True)
    service.delete_obs(target)
    success(f"Deleted obs {obs_id}")


@obs.command()
@reports_errors
def voided() -> None:
    """List voided observations, most recently voided first."""
    _echo_all(_service().get_voided_observations())


@obs.command()
@click.argument("search")
@click.option(
    "--include-voided", is_flag=True, help="Also match voided observations."
)
@click.option(
    "--person-type",
    "person_types",
    multiple=True,
    type=click.Choice([kind.value for kind in PersonKind], case_sensitive=False),
    help="Only subjects of this kind. Repeatable; default is any kind.",
)
@reports_errors
def find(search: str, include_voided: bool, person_types: tuple[str, ...]) -> None:
    """Find observations by obs id or by the subject's identifier."""
    kinds = [PersonKind(name.lower()) for name in person_types]
    _echo_all(_service().find_observations(search, include_voided, kinds))


@obs.command()
@click.argument("group_id", type=int)
@reports_errors
def group(group_id: int) -> None:
    """List every member of an observation group."""
    _echo_all(_service().find_obs_by_group_id(group_id))


@obs.command("mime-types")
@reports_errors
def mime_types() -> None:
    """List the mime types complex values may carry."""
    for mime_type in _service().get_mime_types():
        click.echo(
            f"{mime_type.mime_type_id}\t{mime_type.mime_type}\t"
            f"{mime_type.description or ''}".rstrip()
        )
