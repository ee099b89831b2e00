"""
Domain-specific exceptions for companies app.

Caught in views and converted to HTTP responses using ``status_code``.
"""


class CompanyServiceError(Exception):
    """Base exception for all company service errors."""

    code = 'company_error'
    status_code = 400


class CompanyNotFoundError(CompanyServiceError):
    """Raised when a company does not exist."""

    code = 'company_not_found'
    status_code = 404


class NotCompanyOwnerError(CompanyServiceError):
    """Raised when a user acts on behalf of a company they don't own."""

    code = 'not_company_owner'
    status_code = 403


class ConnectAccountExistsError(CompanyServiceError):
    """Raised when a company already has a payment account."""

    code = 'connect_account_exists'
    status_code = 409


class ConnectAccountMissingError(CompanyServiceError):
    """Raised when a payment account is required but not created yet."""

    code = 'connect_account_missing'
