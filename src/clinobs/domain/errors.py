"""Error hierarchy for CLINOBS.

Every error raised by the observation service derives from `ObsError`, so
callers (CLI, transport layers) can catch the family in one place while still
distinguishing the four kinds:

- `ValidationError`: malformed or missing input.
- `NotFoundError`: a referenced identifier does not exist.
- `PersistenceError`: the storage layer failed.
- `AuthorizationError`: a capability check failed.
"""

# ============================================================================
#                               Base error
# ============================================================================


class ObsError(Exception):
    """Base class for all observation service errors."""


# ============================================================================
#                             Validation errors
# ============================================================================


class ValidationError(ObsError):
    """Raised when input is malformed or a required field is missing.

    Attributes:
        field (str): Name of the offending field or parameter.
        reason (str): Human-readable explanation.
    """

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid {field}: {reason}")
        self.field = field
        self.reason = reason


# ============================================================================
#                             Not-found errors
# ============================================================================


class NotFoundError(ObsError):
    """Base class for lookups of an identifier that does not exist."""


class ObsNotFoundError(NotFoundError):
    """Raised when an observation id does not exist in storage.

    Attributes:
        obs_id (int): The identifier that was not found.
    """

    def __init__(self, obs_id: int) -> None:
        super().__init__(f"Observation {obs_id} not found.")
        self.obs_id = obs_id


class MimeTypeNotFoundError(NotFoundError):
    """Raised when a mime type id does not exist.

    Attributes:
        mime_type_id (int): The identifier that was not found.
    """

    def __init__(self, mime_type_id: int) -> None:
        super().__init__(f"Mime type {mime_type_id} not found.")
        self.mime_type_id = mime_type_id


# ============================================================================
#                            Persistence errors
# ============================================================================


class PersistenceError(ObsError):
    """Raised when storage rejects a read or write."""


class StoreUnavailableError(PersistenceError):
    """Operational/timeout/connection errors from the storage backend."""


# ============================================================================
#                           Authorization errors
# ============================================================================


class AuthorizationError(ObsError):
    """Raised when the caller lacks a required privilege.

    Attributes:
        privilege (str): The privilege that was required.
    """

    def __init__(self, privilege: str) -> None:
        super().__init__(f"Privilege required: {privilege}")
        self.privilege = privilege
