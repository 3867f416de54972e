"""Domain error taxonomy.

Every public service operation fails with one of these kinds. The HTTP layer
renders them through a single exception handler using ``status_code``.
"""


class VaultError(Exception):
    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class AlreadyExists(VaultError):
    status_code = 409
    message = "Account with given email or nickname already exists"


class NotFound(VaultError):
    status_code = 404
    message = "Not found"


class AlreadyVerified(VaultError):
    status_code = 409
    message = "Account already verified"


class ForbiddenIdentifier(VaultError):
    status_code = 403
    message = "Nickname is not allowed"


class PasswordTokenAlreadyExist(AlreadyExists):
    message = "Password reset token already issued, check your inbox or wait until it expires"


class PasswordTokenNotFound(NotFound):
    message = "Password reset token not found"


class ResetTokenExpired(VaultError):
    status_code = 410
    message = "Password reset token has expired"


class DeviceMismatch(VaultError):
    status_code = 403
    message = "Device doesn't match with device of current session"


class CannotTerminateSelf(VaultError):
    status_code = 400
    message = "Current session cannot be terminated, use logout instead"


class InvalidAddress(VaultError):
    status_code = 400
    message = "Invalid client address"


class IncorrectPassword(VaultError):
    status_code = 401
    message = "Incorrect login or password"
