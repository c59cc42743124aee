"""Error taxonomy raised by the registration services.

Every error carries an HTTP status code and a message that is safe to show
to the caller. Anything that is not a RegistrationError is an internal failure.
"""


class RegistrationError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.message}"


class ValidationError(RegistrationError):
    """Malformed or logically inconsistent input."""

    status_code = 400


class CapacityError(ValidationError):
    """Event or ticket capacity would be exceeded."""

    status_code = 409


class DuplicateRegistrationError(ValidationError):
    """A registration with the same idempotency key already exists."""

    status_code = 409


class NotFoundError(RegistrationError):
    status_code = 404


class AuthenticationError(RegistrationError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(RegistrationError):
    status_code = 403

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)
