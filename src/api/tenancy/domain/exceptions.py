"""Domain exceptions for the tenancy bounded context.

Each exception carries the status error code it maps to. The tenant admin
service converts them into ``Status`` errors at its boundary, so callers of
the service never see them raised.
"""

from shared_kernel.status import ErrorCode


class TenancyError(Exception):
    """Base class for tenant administration failures."""

    code: ErrorCode = ErrorCode.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TenantValidationError(TenancyError):
    """Raised for bad input: blank or duplicate names, invalid options.

    This exception indicates that a business rule was violated before any
    store was touched.
    """

    code = ErrorCode.VALIDATION


class TenantNotFoundError(TenancyError):
    """Raised when a tenant id cannot be resolved."""

    code = ErrorCode.NOT_FOUND


class TenantConcurrencyError(TenancyError):
    """Raised when a tenant record changed between read and commit."""

    code = ErrorCode.CONCURRENCY


class StoreOperationError(TenancyError):
    """Raised when reading or writing a tenant data store fails."""

    code = ErrorCode.STORE_OPERATION


class TenancyConfigurationError(TenancyError):
    """Raised when the configuration cannot serve a request.

    Examples are an unknown connection name or an invalid tenant type
    combination.
    """

    code = ErrorCode.CONFIGURATION
