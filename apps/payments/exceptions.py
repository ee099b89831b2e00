"""
Domain-specific exceptions for payments app.

State rejections about the split itself (not a participant, already paid,
organizer paying their own slot) are raised from ``apps.splits.exceptions``;
this module covers settlement and payment processor failures.
"""


class PaymentServiceError(Exception):
    """Base exception for payment service errors."""

    code = 'payment_error'
    status_code = 400


class SplitNotFullError(PaymentServiceError):
    """Raised when payment is requested before every slot is taken."""

    code = 'split_not_full'
    status_code = 409


class OrganizerNotReadyError(PaymentServiceError):
    """Raised when the organizer cannot receive funds yet."""

    code = 'organizer_not_ready'


class PaymentNotVerifiedError(PaymentServiceError):
    """Raised when the processor does not confirm the claimed payment."""

    code = 'payment_not_verified'


class WebhookSignatureError(PaymentServiceError):
    """Raised when a webhook payload fails signature verification."""

    code = 'invalid_webhook_signature'


class PaymentsNotConfiguredError(PaymentServiceError):
    """Raised when no payment processor credentials are configured."""

    code = 'payments_not_configured'
    status_code = 503


class PaymentProcessorError(PaymentServiceError):
    """Raised when the payment processor rejects a request or is unreachable."""

    code = 'payment_processor_error'
    status_code = 502


class PaymentInitiationError(PaymentProcessorError):
    """Raised when a checkout session cannot be created."""

    code = 'payment_initiation_failed'
