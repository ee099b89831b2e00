"""
Domain-specific exceptions for splits app.

Every rejection raised by the split aggregate or the split service is a
distinct subclass so that views can tell the caller exactly what went
wrong ("slot taken" vs "split cancelled" vs "already paid").

Each exception carries a stable ``code`` and the HTTP ``status_code``
views should answer with.
"""


class SplitServiceError(Exception):
    """Base exception for all split errors."""

    code = 'split_error'
    status_code = 400
    default_message = 'Split operation failed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------

class ValidationError(SplitServiceError):
    """Raised when split creation input is invalid."""

    code = 'validation_error'
    default_message = 'Invalid split data.'


# -----------------------------------------------------------------------------
# Lookup
# -----------------------------------------------------------------------------

class SplitNotFoundError(SplitServiceError):
    """Raised when a split does not exist."""

    code = 'split_not_found'
    status_code = 404
    default_message = 'Split not found.'


# -----------------------------------------------------------------------------
# State conflicts
# -----------------------------------------------------------------------------

class NotOpenError(SplitServiceError):
    """Raised when a split no longer accepts the requested change."""

    code = 'split_not_open'
    status_code = 409
    default_message = 'Split is no longer accepting participants.'


class SplitClosedError(SplitServiceError):
    """Raised when a cancelled or completed split is modified."""

    code = 'split_closed'
    status_code = 409
    default_message = 'Split is closed.'


class NotFullError(SplitServiceError):
    """Raised when a payment is applied to a split that is not full."""

    code = 'split_not_full'
    status_code = 409
    default_message = 'Split is not full yet.'


class AlreadyJoinedError(SplitServiceError):
    """Raised when a company joins a split it already participates in."""

    code = 'already_joined'
    status_code = 409
    default_message = 'Already joined this split.'


class NoSlotsAvailableError(SplitServiceError):
    """Raised when every slot of a split is taken."""

    code = 'no_slots_available'
    status_code = 409
    default_message = 'No slots available.'


class NotParticipantError(SplitServiceError):
    """Raised when the company is not a participant of the split."""

    code = 'not_participant'
    default_message = 'Not a participant in this split.'


class OrganizerCannotLeaveError(SplitServiceError):
    """Raised when the organizer tries to leave their own split."""

    code = 'organizer_cannot_leave'
    default_message = 'Organizer cannot leave. Cancel the split instead.'


class OrganizerNotPayableError(SplitServiceError):
    """Raised when a payment targets the organizer's own slot."""

    code = 'organizer_not_payable'
    default_message = 'Organizer does not pay for their own split.'


class AlreadyPaidError(SplitServiceError):
    """Raised when a paid participant is removed or charged again."""

    code = 'already_paid'
    status_code = 409
    default_message = 'Already paid for this split.'


class NotOrganizerError(SplitServiceError):
    """Raised when a non-organizer attempts an organizer-only action."""

    code = 'not_organizer'
    status_code = 403
    default_message = 'Only the organizer can perform this action.'


class HasPaidParticipantsError(SplitServiceError):
    """Raised when cancelling a split some participants already paid for."""

    code = 'has_paid_participants'
    status_code = 409
    default_message = 'Cannot cancel - some participants have paid. Process refunds first.'


# -----------------------------------------------------------------------------
# Concurrency
# -----------------------------------------------------------------------------

class ConcurrentModificationError(SplitServiceError):
    """Raised when optimistic writes keep conflicting after all retries."""

    code = 'concurrent_modification'
    status_code = 409
    default_message = 'Split was modified concurrently. Please retry.'
