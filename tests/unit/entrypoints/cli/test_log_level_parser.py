"""Unit tests for the ``-L NAME=LEVEL`` callback."""

import logging

import click
import pytest

from clinobs.entrypoints.cli.helpers.log_level_parser import (
    DEFAULT_LIB_LEVELS,
    parse_log_level,
)


def test_no_items_gives_library_defaults():
    """With nothing given, only the chatty libraries are capped at WARNING."""
    assert parse_log_level(None, None, ()) == DEFAULT_LIB_LEVELS


def test_items_extend_and_override_defaults():
    """Later items win; new names are added next to the defaults."""
    out = parse_log_level(
        None,
        None,
        ("sqlalchemy=INFO", "clinobs.service_layer=debug", "sqlalchemy=ERROR"),
    )
    assert out["sqlalchemy"] == logging.ERROR
    assert out["clinobs.service_layer"] == logging.DEBUG
    assert out["alembic"] == logging.WARNING


def test_env_style_string_is_split_on_commas_and_spaces():
    """A single string (as read from CLINOBS_LOGGER_LEVELS) is split."""
    out = parse_log_level(None, None, "alembic=INFO,  clinobs=ERROR urllib3=WARNING")
    assert out["alembic"] == logging.INFO
    assert out["clinobs"] == logging.ERROR
    assert out["urllib3"] == logging.WARNING


@pytest.mark.parametrize("item", ["clinobs", "=INFO", "clinobs=LOUD", "clinobs="])
def test_malformed_items_raise_bad_parameter(item):
    """Items that are not NAME=LEVEL with a known level are rejected."""
    with pytest.raises(click.BadParameter):
        parse_log_level(None, None, (item,))
