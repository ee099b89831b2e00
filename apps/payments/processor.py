"""
Payment processor contract and its Stripe implementation.

The settlement coordinator only talks to ``PaymentProcessor``. Stripe is
used with Connect destination charges: the participant pays the full
slot price, Stripe transfers it to the organizer's connected account and
keeps ``application_fee`` for the platform.

Every checkout session and payment intent is tagged with
``{'splitId', 'companyId'}`` metadata so asynchronous confirmations can be
correlated back to the split participant.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe
from django.conf import settings

from .exceptions import (
    PaymentInitiationError,
    PaymentNotVerifiedError,
    PaymentProcessorError,
    PaymentsNotConfiguredError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Value objects
# =============================================================================

@dataclass(frozen=True)
class CorrelationTag:
    """Identifies which split participant a payment belongs to."""

    split_id: str
    company_id: str

    def to_metadata(self) -> dict:
        return {'splitId': self.split_id, 'companyId': self.company_id}

    @classmethod
    def from_metadata(cls, metadata) -> Optional['CorrelationTag']:
        if not metadata:
            return None
        split_id = metadata.get('splitId')
        company_id = metadata.get('companyId')
        if not split_id or not company_id:
            return None
        return cls(split_id=str(split_id), company_id=str(company_id))


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    redirect_url: str


@dataclass(frozen=True)
class VerifiedPayment:
    """Authoritative payment state as reported by the processor."""

    reference: str
    status: str
    succeeded: bool
    correlation: Optional[CorrelationTag] = None
    amount: Optional[int] = None
    currency: Optional[str] = None


class EventType:
    PAYMENT_SUCCEEDED = 'payment_succeeded'
    PAYMENT_FAILED = 'payment_failed'
    IGNORED = 'ignored'


@dataclass(frozen=True)
class ProcessorEvent:
    """Inbound processor notification, reduced to what settlement needs."""

    type: str
    source_type: str
    reference: Optional[str] = None
    correlation: Optional[CorrelationTag] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class AccountStatus:
    account_id: str
    charges_enabled: bool
    payouts_enabled: bool

    @property
    def onboarded(self) -> bool:
        return self.charges_enabled and self.payouts_enabled


# =============================================================================
# Contract
# =============================================================================

class PaymentProcessor(ABC):
    """Interface for the external payment processor."""

    @abstractmethod
    def create_checkout_session(
        self,
        *,
        amount: int,
        application_fee: int,
        destination_account: str,
        correlation: CorrelationTag,
        product_name: str,
        product_description: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Create a redirectable checkout session for amount (minor units)."""
        ...

    @abstractmethod
    def retrieve_payment(self, reference: str) -> VerifiedPayment:
        """Look up the authoritative state of a payment or checkout session."""
        ...

    @abstractmethod
    def parse_event(self, payload: bytes, signature: str) -> ProcessorEvent:
        """Verify and decode a webhook delivery."""
        ...

    @abstractmethod
    def create_connected_account(self, *, email: str, business_name: str) -> str:
        """Create a payout account for a company; returns its ID."""
        ...

    @abstractmethod
    def create_onboarding_link(self, *, account_id: str, return_url: str, refresh_url: str) -> str:
        ...

    @abstractmethod
    def retrieve_account_status(self, account_id: str) -> AccountStatus:
        ...

    @abstractmethod
    def create_dashboard_link(self, account_id: str) -> str:
        ...


# =============================================================================
# Stripe
# =============================================================================

class StripePaymentProcessor(PaymentProcessor):
    """Stripe Checkout + Connect implementation."""

    def __init__(self, *, api_key: str, webhook_secret: str = '', currency: str = 'usd') -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._currency = currency

    def create_checkout_session(
        self,
        *,
        amount: int,
        application_fee: int,
        destination_account: str,
        correlation: CorrelationTag,
        product_name: str,
        product_description: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        metadata = correlation.to_metadata()
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                mode='payment',
                payment_method_types=['card'],
                line_items=[{
                    'price_data': {
                        'currency': self._currency,
                        'product_data': {
                            'name': product_name,
                            'description': product_description,
                        },
                        'unit_amount': amount,
                    },
                    'quantity': 1,
                }],
                payment_intent_data={
                    'application_fee_amount': application_fee,
                    'transfer_data': {'destination': destination_account},
                    'metadata': metadata,
                },
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout session failed for %s: %s", metadata, e)
            raise PaymentInitiationError(e.user_message or 'Failed to create payment session') from e

        return CheckoutSession(session_id=session['id'], redirect_url=session['url'])

    def retrieve_payment(self, reference: str) -> VerifiedPayment:
        try:
            if reference.startswith('cs_'):
                return self._verify_checkout_session(reference)
            intent = stripe.PaymentIntent.retrieve(reference, api_key=self._api_key)
        except stripe.InvalidRequestError as e:
            logger.warning("Stripe has no payment %s: %s", reference, e)
            raise PaymentNotVerifiedError(f'Unknown payment reference {reference}') from e
        except stripe.StripeError as e:
            logger.error("Stripe lookup of %s failed: %s", reference, e)
            raise PaymentProcessorError(e.user_message or 'Failed to verify payment') from e

        return VerifiedPayment(
            reference=intent['id'],
            status=intent['status'],
            succeeded=intent['status'] == 'succeeded',
            correlation=CorrelationTag.from_metadata(intent.get('metadata')),
            amount=intent.get('amount'),
            currency=intent.get('currency'),
        )

    def _verify_checkout_session(self, session_id: str) -> VerifiedPayment:
        session = stripe.checkout.Session.retrieve(session_id, api_key=self._api_key)
        # The payment intent ID is the canonical reference, as in webhooks
        return VerifiedPayment(
            reference=session.get('payment_intent') or session['id'],
            status=session['payment_status'],
            succeeded=session['payment_status'] == 'paid',
            correlation=CorrelationTag.from_metadata(session.get('metadata')),
            amount=session.get('amount_total'),
            currency=session.get('currency'),
        )

    def parse_event(self, payload: bytes, signature: str) -> ProcessorEvent:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise WebhookSignatureError(f"Webhook Error: {e}") from e

        obj = event['data']['object']
        source_type = event['type']

        if source_type == 'payment_intent.succeeded':
            return ProcessorEvent(
                type=EventType.PAYMENT_SUCCEEDED,
                source_type=source_type,
                reference=obj['id'],
                correlation=CorrelationTag.from_metadata(obj.get('metadata')),
            )
        if source_type == 'checkout.session.completed' and obj.get('payment_status') == 'paid':
            return ProcessorEvent(
                type=EventType.PAYMENT_SUCCEEDED,
                source_type=source_type,
                reference=obj.get('payment_intent') or obj['id'],
                correlation=CorrelationTag.from_metadata(obj.get('metadata')),
            )
        if source_type == 'payment_intent.payment_failed':
            last_error = obj.get('last_payment_error') or {}
            return ProcessorEvent(
                type=EventType.PAYMENT_FAILED,
                source_type=source_type,
                reference=obj['id'],
                correlation=CorrelationTag.from_metadata(obj.get('metadata')),
                reason=last_error.get('message'),
            )
        return ProcessorEvent(type=EventType.IGNORED, source_type=source_type)

    def create_connected_account(self, *, email: str, business_name: str) -> str:
        try:
            account = stripe.Account.create(
                api_key=self._api_key,
                type='express',
                email=email,
                business_profile={
                    'name': business_name,
                    'product_description': 'Company participating in cost-sharing splits',
                },
                capabilities={
                    'card_payments': {'requested': True},
                    'transfers': {'requested': True},
                },
            )
        except stripe.StripeError as e:
            logger.error("Stripe Connect account creation failed: %s", e)
            raise PaymentProcessorError(e.user_message or 'Failed to create Stripe Connect account') from e
        return account['id']

    def create_onboarding_link(self, *, account_id: str, return_url: str, refresh_url: str) -> str:
        try:
            link = stripe.AccountLink.create(
                api_key=self._api_key,
                account=account_id,
                return_url=return_url,
                refresh_url=refresh_url,
                type='account_onboarding',
            )
        except stripe.StripeError as e:
            logger.error("Stripe onboarding link failed for %s: %s", account_id, e)
            raise PaymentProcessorError(e.user_message or 'Failed to create onboarding link') from e
        return link['url']

    def retrieve_account_status(self, account_id: str) -> AccountStatus:
        try:
            account = stripe.Account.retrieve(account_id, api_key=self._api_key)
        except stripe.StripeError as e:
            logger.error("Stripe account lookup failed for %s: %s", account_id, e)
            raise PaymentProcessorError(e.user_message or 'Failed to check account status') from e
        return AccountStatus(
            account_id=account['id'],
            charges_enabled=bool(account.get('charges_enabled')),
            payouts_enabled=bool(account.get('payouts_enabled')),
        )

    def create_dashboard_link(self, account_id: str) -> str:
        try:
            link = stripe.Account.create_login_link(account_id, api_key=self._api_key)
        except stripe.StripeError as e:
            logger.error("Stripe dashboard link failed for %s: %s", account_id, e)
            raise PaymentProcessorError(e.user_message or 'Failed to create dashboard link') from e
        return link['url']


def build_payment_processor() -> PaymentProcessor:
    """
    Raises:
        PaymentsNotConfiguredError: If STRIPE_SECRET_KEY is not set.
    """
    if not settings.STRIPE_SECRET_KEY:
        raise PaymentsNotConfiguredError(
            'Stripe is not configured. Please add STRIPE_SECRET_KEY to environment variables.'
        )
    return StripePaymentProcessor(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        currency=settings.STRIPE_CURRENCY,
    )
