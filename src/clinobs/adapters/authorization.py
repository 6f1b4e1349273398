"""Authorizer that grants a fixed set of privileges.

Suitable for the CLI (privileges come from `CLINOBS_PRIVILEGES`) and for
tests. Privilege names compare case-sensitively, as they are stored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from clinobs.interfaces.authorization import Authorizer

logger = logging.getLogger(__name__)


class StaticAuthorizer(Authorizer):
    """Grants exactly the privileges it was built with."""

    def __init__(self, privileges: Iterable[str] = ()):
        self.privileges = frozenset(p.strip() for p in privileges if p.strip())

    def has_privilege(self, privilege: str) -> bool:
        granted = privilege in self.privileges
        if not granted:
            logger.debug("Privilege %r not granted", privilege)
        return granted
