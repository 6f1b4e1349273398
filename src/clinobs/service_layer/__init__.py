"""Service layer for CLINOBS.

Implements the observation use cases: lifecycle operations, the query surface,
and transaction boundaries. Calls domain objects and the outbound ports defined
in `clinobs.interfaces`.

Dependency rule: may import `clinobs.domain` and `clinobs.interfaces`, but not
`clinobs.adapters` or `clinobs.entrypoints`.
"""

from .obs_service import ObsService

__all__ = ["ObsService"]
