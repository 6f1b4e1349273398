"""Fixtures and test helpers for end-to-end CLI tests.

Provides a test-only `log-demo` Click command that emits log messages shaped
like the service's own, plus fixtures to register that command, obtain a
CliRunner, run tests within an isolated filesystem, and hand the CLI an
in-memory observation service.
"""

import logging

import click
import pytest
from click.testing import CliRunner

from clinobs.adapters.obs_store import InMemoryObsData
from clinobs.bootstrap import AppContainer, build_in_memory_service
from clinobs.entrypoints.cli.main import clinobs

# pylint: disable=redefined-outer-name


@click.command()
def log_demo():
    """Emit representative log messages for CLI/flight-recorder tests.

    Emits DEBUG/INFO/WARNING/ERROR/CRITICAL messages on the 'clinobs.demo'
    logger and additional messages on a 'some.thirdparty' logger to exercise
    logger-level filtering and flight-recorder behavior.
    """
    logger = logging.getLogger("clinobs.demo")
    logger.debug("Obs 7 is not voided; noop")
    logger.info("Voided obs 7: duplicate entry")
    logger.warning("Deleted obs 8 permanently; audit trail bypassed")
    logger.error("Storage failure during create_obs_group")
    logger.critical("Database unreachable")
    third_party_logger = logging.getLogger("some.thirdparty")
    third_party_logger.debug("third-party pool checkout")
    third_party_logger.info("third-party connection opened")
    third_party_logger.warning("third-party pool overflow")
    logger.debug("Unvoided obs 7")


def _remove_command_everywhere(group, name: str) -> None:
    """Remove a command from a Click group and its internal sections."""
    group.commands.pop(name, None)
    if hasattr(group, "_default_section"):
        group._default_section.commands.pop(name, None)  # pylint: disable=protected-access
    for sec in getattr(group, "_sections", []):
        getattr(sec, "commands", {}).pop(name, None)


@pytest.fixture
def registered_log_demo():
    """Register the 'log-demo' command on `clinobs` for the duration of a test."""
    clinobs.add_command(log_demo, name="log-demo")
    try:
        yield
    finally:
        _remove_command_everywhere(clinobs, "log-demo")


@pytest.fixture
def runner():
    """Return a Click CliRunner for invoking CLI commands in tests."""
    return CliRunner()


@pytest.fixture
def fs(runner):
    """Confine filesystem side-effects (log files) to a temp directory."""
    with runner.isolated_filesystem():
        yield


@pytest.fixture
def obs_data() -> InMemoryObsData:
    """Storage behind the in-memory service; seed it through `container`."""
    return InMemoryObsData()


@pytest.fixture
def container(obs_data) -> AppContainer:
    """An AppContainer to pass as ``obj=`` so commands skip bootstrapping."""
    return AppContainer(obs_service=build_in_memory_service(data=obs_data))


@pytest.fixture
def invoke(runner, fs, container):
    """Invoke `clinobs` with the in-memory container and no flight recorder."""

    def _invoke(*args: str, **kwargs):
        return runner.invoke(
            clinobs, ["--no-flight-recorder", *args], obj=container, **kwargs
        )

    return _invoke
