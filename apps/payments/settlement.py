"""
Settlement coordinator.

Bridges full splits to the payment processor:

1. ``initiate_payment`` prices a participant's slot, adds the platform fee
   and asks the processor for a checkout session routed to the organizer.
2. The processor later confirms the payment (webhook or client return).
   ``confirm_payment`` re-queries the processor for the authoritative
   status before touching the split; the caller's word is never trusted.
3. A payment must charge exactly one slot price in the platform currency.
   Confirmations that no longer fit the split (already completed,
   participant left, split deleted) are logged for manual reconciliation
   and ignored. Deliveries are not ordered relative to other changes, so
   they are never fatal.
"""

import logging
from typing import Optional

from django.conf import settings

from apps.companies.services import CompanyPaymentDirectory
from apps.splits.domain import Split, SplitStatus
from apps.splits.exceptions import (
    AlreadyPaidError,
    NotFullError,
    NotParticipantError,
    OrganizerNotPayableError,
    SplitNotFoundError,
)
from apps.splits.services import SplitService, build_split_service

from .exceptions import OrganizerNotReadyError, PaymentNotVerifiedError, SplitNotFullError
from .fees import platform_fee, to_minor_units
from .processor import (
    CheckoutSession,
    CorrelationTag,
    EventType,
    PaymentProcessor,
    ProcessorEvent,
    VerifiedPayment,
    build_payment_processor,
)

logger = logging.getLogger(__name__)

# Split states a late confirmation may run into; these are not errors
STALE_CONFIRMATION_ERRORS = (
    SplitNotFoundError,
    NotFullError,
    NotParticipantError,
    OrganizerNotPayableError,
    AlreadyPaidError,
)


class SettlementCoordinator:
    """Payment initiation and confirmation for split participants."""

    def __init__(
        self,
        split_service: SplitService,
        processor: PaymentProcessor,
        destinations: CompanyPaymentDirectory,
        *,
        frontend_url: str = '',
        currency: str = 'usd',
    ) -> None:
        self._splits = split_service
        self._processor = processor
        self._destinations = destinations
        self._frontend_url = frontend_url.rstrip('/')
        self._currency = currency.lower()

    def initiate_payment(self, *, split_id: str, company_id: str) -> CheckoutSession:
        """
        Start a checkout for a participant's share of a full split.

        Args:
            split_id: Split being paid for
            company_id: Paying participant (never the organizer)

        Returns:
            CheckoutSession with the processor's redirect URL

        Raises:
            SplitNotFoundError: If the split doesn't exist
            NotParticipantError: If the company is not a participant
            OrganizerNotPayableError: If the company is the organizer
            AlreadyPaidError: If the participant already paid
            SplitNotFullError: If the split is not full
            OrganizerNotReadyError: If the organizer cannot receive funds
            PaymentInitiationError: If the processor rejects the session
        """
        split = self._splits.get_split(split_id=split_id)

        participant = split.participant(company_id)
        if participant is None:
            raise NotParticipantError('Company is not a participant in this split')
        if company_id == split.organizer_id:
            raise OrganizerNotPayableError()
        if participant.paid:
            raise AlreadyPaidError()
        if split.status != SplitStatus.FULL:
            raise SplitNotFullError(
                f'Payments open once the split is full ({split.filled_slots}/{split.slots})'
            )

        destination = self._destinations.get_payment_account(split.organizer_id)
        if destination is None:
            raise OrganizerNotReadyError(
                'Organizer has not completed Stripe setup. Contact them to complete onboarding.'
            )

        amount = to_minor_units(split.cost_per_slot)
        fee = platform_fee(amount)
        session = self._processor.create_checkout_session(
            amount=amount,
            application_fee=fee,
            destination_account=destination,
            correlation=CorrelationTag(split_id=split.id, company_id=company_id),
            product_name=f'Split: {split.title}',
            product_description=f'Your share of the {split.type.value} split',
            success_url=f'{self._frontend_url}/splits/{split.id}?payment=success&session_id={{CHECKOUT_SESSION_ID}}',
            cancel_url=f'{self._frontend_url}/splits/{split.id}?payment=cancelled',
        )
        logger.info(
            "Checkout %s started for %s on split %s (amount %s, fee %s)",
            session.session_id, company_id, split.id, amount, fee
        )
        return session

    def confirm_payment(self, *, split_id: str, company_id: str, payment_reference: str) -> Optional[Split]:
        """
        Apply a processor-confirmed payment to the split.

        Safe to call repeatedly with the same reference.

        Returns:
            The split after the payment (or as it stands, when the
            confirmation was stale), or None if the split no longer exists.

        Raises:
            PaymentNotVerifiedError: If the processor does not report the
                payment as succeeded for this split participant, or the
                charge is not one slot price in the platform currency
            PaymentProcessorError: If the processor cannot be queried
            ConcurrentModificationError: If writes keep conflicting
        """
        verified = self._processor.retrieve_payment(payment_reference)
        if not verified.succeeded:
            raise PaymentNotVerifiedError(f'Payment {payment_reference} is {verified.status}')

        expected = CorrelationTag(split_id=str(split_id), company_id=str(company_id))
        if verified.correlation != expected:
            raise PaymentNotVerifiedError(
                f'Payment {payment_reference} does not belong to this split participant'
            )

        try:
            split = self._splits.get_split(split_id=expected.split_id)
        except SplitNotFoundError as e:
            self._log_unapplied(verified.reference, expected, e)
            return None

        self._check_amount(verified, split)

        try:
            return self._splits.apply_payment(
                split_id=expected.split_id,
                company_id=expected.company_id,
                payment_reference=verified.reference,
            )
        except STALE_CONFIRMATION_ERRORS as e:
            self._log_unapplied(verified.reference, expected, e)

        try:
            return self._splits.get_split(split_id=expected.split_id)
        except SplitNotFoundError:
            return None

    def _check_amount(self, verified: VerifiedPayment, split: Split) -> None:
        """
        Raises:
            PaymentNotVerifiedError: If the charge is not one slot's price
        """
        expected_amount = to_minor_units(split.cost_per_slot)
        if verified.amount != expected_amount:
            raise PaymentNotVerifiedError(
                f'Payment {verified.reference} charged {verified.amount}, expected {expected_amount}'
            )
        if (verified.currency or '').lower() != self._currency:
            raise PaymentNotVerifiedError(
                f'Payment {verified.reference} is in {verified.currency}, expected {self._currency}'
            )

    def _log_unapplied(self, reference: str, correlation: CorrelationTag, error: Exception) -> None:
        # Money was taken but no slot was marked paid
        logger.error(
            "Unapplied payment %s for %s on split %s needs manual reconciliation: %s",
            reference, correlation.company_id, correlation.split_id, error
        )

    def handle_payment_failed(self, correlation: Optional[CorrelationTag], reason: Optional[str]) -> None:
        """A failed attempt changes nothing; the participant may retry."""
        logger.warning(
            "Payment failed for %s: %s",
            correlation.to_metadata() if correlation else 'unknown split',
            reason or 'no reason given'
        )

    def parse_event(self, payload: bytes, signature: str) -> ProcessorEvent:
        """
        Raises:
            WebhookSignatureError: If the payload is not signed by the processor
        """
        return self._processor.parse_event(payload, signature)

    def handle_event(self, event: ProcessorEvent) -> None:
        """Dispatch a verified webhook event."""
        if event.type == EventType.PAYMENT_SUCCEEDED:
            if event.correlation is None or not event.reference:
                logger.info("Ignoring %s without split metadata", event.source_type)
                return
            try:
                self.confirm_payment(
                    split_id=event.correlation.split_id,
                    company_id=event.correlation.company_id,
                    payment_reference=event.reference,
                )
            except PaymentNotVerifiedError as e:
                logger.warning("Webhook %s not applied: %s", event.source_type, e)
        elif event.type == EventType.PAYMENT_FAILED:
            self.handle_payment_failed(event.correlation, event.reason)
        else:
            logger.info("Unhandled event type: %s", event.source_type)


def build_settlement_coordinator() -> SettlementCoordinator:
    """
    Raises:
        PaymentsNotConfiguredError: If the processor has no credentials.
    """
    return SettlementCoordinator(
        build_split_service(),
        build_payment_processor(),
        CompanyPaymentDirectory(),
        frontend_url=settings.FRONTEND_URL,
        currency=settings.STRIPE_CURRENCY,
    )
