"""Shared exceptions for service layer operations."""


class NotFoundError(Exception):
    """
    Raised when a row does not exist or is not visible to the caller.

    Private rows owned by someone else are reported exactly like missing ones
    so their existence is not leaked.
    """

    def __init__(self, resource: str, resource_id: int | str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource.capitalize()} not found")


class PermissionDeniedError(Exception):
    """Raised when the caller can see a row but may not modify it."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class AccountNotApprovedError(Exception):
    """Raised when an unapproved account attempts an approval-gated action."""

    def __init__(self) -> None:
        super().__init__("Your account is awaiting admin approval")


class QuotaExceededError(Exception):
    """Raised when a user has reached their bookmark quota."""

    def __init__(self, resource: str, current: int, limit: int) -> None:
        self.resource = resource
        self.current = current
        self.limit = limit
        super().__init__(
            f"You have reached your limit of {limit} {resource}s. "
            "Upgrade to premium to save more.",
        )


class DuplicateFieldError(Exception):
    """Raised when a unique user field (username, email) is already taken."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"That {field} is already in use")


class InvalidInputError(Exception):
    """Raised for request-level validation that needs database context."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
