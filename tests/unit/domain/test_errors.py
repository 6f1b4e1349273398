"""Unit tests for domain errors."""

import pytest

from clinobs.domain import errors


class TestValidationError:
    """Tests for the ValidationError domain error."""

    @staticmethod
    def test_attributes() -> None:
        """Test that the error keeps the offending field and the reason."""
        error = errors.ValidationError("reason", "a void reason is required")
        assert error.field == "reason"
        assert error.reason == "a void reason is required"

    @staticmethod
    def test_error_message() -> None:
        """Test that the error message names the field."""
        error = errors.ValidationError("n", "must be a non-negative count, got -1")
        assert str(error) == "Invalid n: must be a non-negative count, got -1"


class TestObsNotFoundError:
    """Tests for the ObsNotFoundError domain error."""

    @staticmethod
    def test_attributes_and_message() -> None:
        """Test that the error carries the id and says which one is missing."""
        error = errors.ObsNotFoundError(42)
        assert error.obs_id == 42
        assert str(error) == "Observation 42 not found."


class TestMimeTypeNotFoundError:
    """Tests for the MimeTypeNotFoundError domain error."""

    @staticmethod
    def test_attributes_and_message() -> None:
        """Test that the error carries the id and says which one is missing."""
        error = errors.MimeTypeNotFoundError(17)
        assert error.mime_type_id == 17
        assert str(error) == "Mime type 17 not found."


class TestAuthorizationError:
    """Tests for the AuthorizationError domain error."""

    @staticmethod
    def test_attributes_and_message() -> None:
        """Test that the error names the missing privilege."""
        error = errors.AuthorizationError("View Person")
        assert error.privilege == "View Person"
        assert str(error) == "Privilege required: View Person"


@pytest.mark.parametrize(
    "error",
    [
        errors.ValidationError("obs", "is required"),
        errors.ObsNotFoundError(1),
        errors.MimeTypeNotFoundError(1),
        errors.PersistenceError("disk full"),
        errors.StoreUnavailableError("connection refused"),
        errors.AuthorizationError("View Person"),
    ],
    ids=lambda e: type(e).__name__,
)
def test_every_error_is_an_obs_error(error) -> None:
    """Callers can catch the whole family through ObsError."""
    assert isinstance(error, errors.ObsError)


def test_not_found_and_unavailable_hierarchy() -> None:
    """Specific errors sit under their category."""
    assert issubclass(errors.ObsNotFoundError, errors.NotFoundError)
    assert issubclass(errors.MimeTypeNotFoundError, errors.NotFoundError)
    assert issubclass(errors.StoreUnavailableError, errors.PersistenceError)
