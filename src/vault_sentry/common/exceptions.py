"""Vault Sentry exception hierarchy.

Messages are shown to callers who may be intruders and carry no more
than the caller needs to act on.
"""


class VaultError(Exception):
    """Base exception for all Vault Sentry errors."""

    status_code = 400

    def __init__(self, message: str = "", code: str = "VAULT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AccessDeniedError(VaultError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="ACCESS_DENIED")


class ServiceUnavailableError(VaultError):
    """Raised for non-admin callers while the global lockdown is engaged."""

    status_code = 503

    def __init__(self, message: str = "System lockdown active"):
        super().__init__(message, code="SERVICE_UNAVAILABLE")


class NotFoundError(VaultError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class SectorNotFoundError(VaultError):
    """The sector was decommissioned; clients should refresh their list."""

    status_code = 404

    def __init__(self, message: str = "Sector decommissioned"):
        super().__init__(message, code="SECTOR_NOT_FOUND")


class InvalidSectorError(VaultError):
    status_code = 422

    def __init__(self, message: str = "Unknown sector"):
        super().__init__(message, code="INVALID_SECTOR")


class DuplicateUsernameError(VaultError):
    status_code = 409

    def __init__(self, message: str = "Username already taken"):
        super().__init__(message, code="DUPLICATE_USERNAME")


class DuplicateSectorError(VaultError):
    status_code = 409

    def __init__(self, message: str = "Sector already exists"):
        super().__init__(message, code="DUPLICATE_SECTOR")


class SectorInUseError(VaultError):
    status_code = 409

    def __init__(self, message: str = "Sector still holds files"):
        super().__init__(message, code="SECTOR_IN_USE")


class WeakCredentialError(VaultError):
    status_code = 422

    def __init__(self, message: str = "Credential does not meet the minimum policy"):
        super().__init__(message, code="WEAK_CREDENTIAL")


class PatternMismatchError(VaultError):
    status_code = 422

    def __init__(self, message: str = "Identifier does not satisfy the current ID policy"):
        super().__init__(message, code="PATTERN_MISMATCH")


class InvalidPatternError(VaultError):
    status_code = 422

    def __init__(self, message: str = "ID pattern is not a valid regular expression"):
        super().__init__(message, code="INVALID_PATTERN")


class InvalidCredentialError(VaultError):
    status_code = 401

    def __init__(self, message: str = "Invalid credential"):
        super().__init__(message, code="INVALID_CREDENTIAL")


class LoginDeniedError(VaultError):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="DENIED")


class MigrationRequiredError(VaultError):
    """Credentials are valid but the username no longer matches the ID policy."""

    status_code = 409

    def __init__(self, message: str = "Identifier migration required"):
        super().__init__(message, code="MIGRATION_REQUIRED")


class AlreadyDecidedError(VaultError):
    status_code = 409

    def __init__(self, message: str = "Request already decided"):
        super().__init__(message, code="ALREADY_DECIDED")
