"""Interface for checking caller-held privileges."""

import abc

# pylint: disable=too-few-public-methods

VIEW_PERSON = "View Person"


class Authorizer(abc.ABC):
    """Contract for a privilege check against the caller's context."""

    @abc.abstractmethod
    def has_privilege(self, privilege: str) -> bool:
        """Return True if the current caller holds `privilege`."""
