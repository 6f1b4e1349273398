"""Status lines for the CLINOBS CLI.

Lines go to stderr so stdout stays reserved for command output (observation
listings). Each line starts with an emoji glyph, or an ASCII fallback when
stderr cannot encode it.
"""

import click

CAUTION = ("⚠️", "[!]")  # pragma: no mutate
SUCCESS = ("✅", "[OK]")  # pragma: no mutate
ERROR = ("❌", "[X]")  # pragma: no mutate


def _supports_character(character: str) -> bool:
    """Return True if `character` can be encoded on stderr."""
    stream = click.get_text_stream("stderr")  # pragma: no mutate
    encoding = getattr(stream, "encoding", None) or "ascii"
    try:
        character.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def _glyph(pair: tuple[str, str]) -> str:
    emoji, fallback = pair
    return emoji if _supports_character(emoji) else fallback


def caution_glyph() -> str:
    """Return "⚠️", or the ASCII fallback "[!]"."""
    return _glyph(CAUTION)


def success_glyph() -> str:
    """Return "✅", or the ASCII fallback "[OK]"."""
    return _glyph(SUCCESS)


def error_glyph() -> str:
    """Return "❌", or the ASCII fallback "[X]"."""
    return _glyph(ERROR)


def warn(msg: str) -> None:
    """Emit a bold yellow warning line, e.g. ``⚠️  This deletes data.``"""
    click.secho(f"{caution_glyph()}  {msg}", fg="yellow", bold=True, err=True)


def success(msg: str) -> None:
    """Emit a bold green success line, e.g. ``✅  Voided obs 12.``"""
    click.secho(f"{success_glyph()}  {msg}", fg="green", bold=True, err=True)


def error(msg: str) -> None:
    """Emit a bold red error line, e.g. ``❌  Cannot connect to database.``"""
    click.secho(f"{error_glyph()}  {msg}", fg="red", bold=True, err=True)
