"""
Domain errors raised by the identity service.

Each error carries the HTTP status the API layer answers with; the message is
safe to return to the caller.
"""


class IdentityError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(IdentityError):
    status_code = 400
    default_message = "Invalid request"


class PasswordMismatch(ValidationError):
    default_message = "Passwords do not match"


class DuplicateEmail(IdentityError):
    status_code = 409
    default_message = "Email already exists"


class RoleNotFound(IdentityError):
    status_code = 400
    default_message = "Role not found"


class RoleInUse(IdentityError):
    status_code = 409
    default_message = "Role is assigned to users and cannot be deleted"


class UserNotFound(IdentityError):
    status_code = 404
    default_message = "User not found"


class InvalidCredentials(IdentityError):
    status_code = 401
    default_message = "Invalid email or password"


class AccountNotActive(IdentityError):
    status_code = 403

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Account is {status.lower()}")


class MissingToken(IdentityError):
    status_code = 400
    default_message = "Refresh token is required"


class InvalidToken(IdentityError):
    status_code = 401
    default_message = "Invalid refresh token"


class TokenExpired(IdentityError):
    status_code = 401
    default_message = "Refresh token has expired"


class Forbidden(IdentityError):
    status_code = 403
    default_message = "Insufficient permissions"
