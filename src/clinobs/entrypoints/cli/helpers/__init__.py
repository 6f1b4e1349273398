"""CLI helpers for CLINOBS.

URL sanitization for safe display, OSC-8 terminal hyperlinks when supported,
and message emitters that write to stderr with emoji→ASCII fallbacks.
"""

from .db_url import sanitize_url
from .hyperlinks import hyperlink
from .messages import error, success, warn

__all__ = ["error", "hyperlink", "sanitize_url", "success", "warn"]
