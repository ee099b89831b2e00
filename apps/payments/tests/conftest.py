import json
import pytest
from django.contrib.auth import get_user_model

from apps.companies.models import Company
from apps.companies.services import CompanyPaymentDirectory
from apps.payments.exceptions import (
    PaymentInitiationError,
    PaymentNotVerifiedError,
    WebhookSignatureError,
)
from apps.payments.processor import (
    AccountStatus,
    CheckoutSession,
    CorrelationTag,
    PaymentProcessor,
    ProcessorEvent,
    VerifiedPayment,
)
from apps.payments.settlement import SettlementCoordinator
from apps.splits.services import SplitService
from apps.splits.stores import DjangoSplitStore

User = get_user_model()

VALID_SIGNATURE = 't=1,v1=valid'


class FakePaymentProcessor(PaymentProcessor):
    """In-memory processor; payments are seeded by the test."""

    def __init__(self):
        self.sessions = []
        self.payments = {}
        self.accounts = {}
        self.fail_checkout = False

    # Test helpers

    def record_payment(self, reference, *, split_id, company_id, status='succeeded', canonical=None,
                       amount=33400, currency='usd'):
        """Seed what the processor will report for reference (default: one 334 slot)."""
        self.payments[reference] = VerifiedPayment(
            reference=canonical or reference,
            status=status,
            succeeded=status in ('succeeded', 'paid'),
            correlation=CorrelationTag(split_id=str(split_id), company_id=str(company_id)),
            amount=amount,
            currency=currency,
        )

    # PaymentProcessor

    def create_checkout_session(self, **kwargs):
        if self.fail_checkout:
            raise PaymentInitiationError('Your card network is unavailable')
        session_id = f'cs_test_{len(self.sessions) + 1}'
        self.sessions.append(dict(kwargs, session_id=session_id))
        return CheckoutSession(session_id=session_id, redirect_url=f'https://checkout.test/{session_id}')

    def retrieve_payment(self, reference):
        try:
            return self.payments[reference]
        except KeyError:
            raise PaymentNotVerifiedError(f'Unknown payment reference {reference}')

    def parse_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise WebhookSignatureError('Webhook Error: No signatures found matching the expected signature')
        data = json.loads(payload)
        return ProcessorEvent(
            type=data['type'],
            source_type=data.get('source_type', data['type']),
            reference=data.get('reference'),
            correlation=CorrelationTag.from_metadata(data.get('metadata')),
            reason=data.get('reason'),
        )

    def create_connected_account(self, *, email, business_name):
        account_id = f'acct_test_{len(self.accounts) + 1}'
        self.accounts[account_id] = AccountStatus(account_id, charges_enabled=False, payouts_enabled=False)
        return account_id

    def create_onboarding_link(self, *, account_id, return_url, refresh_url):
        return f'https://connect.test/onboard/{account_id}?return={return_url}'

    def retrieve_account_status(self, account_id):
        return self.accounts[account_id]

    def create_dashboard_link(self, account_id):
        return f'https://connect.test/dashboard/{account_id}'


# =============================================================================
# Processor and coordinator
# =============================================================================

@pytest.fixture
def processor(monkeypatch):
    """Fake processor, also handed out to the views."""
    fake = FakePaymentProcessor()
    monkeypatch.setattr('apps.payments.settlement.build_payment_processor', lambda: fake)
    monkeypatch.setattr('apps.payments.connect.build_payment_processor', lambda: fake)
    return fake


@pytest.fixture
def split_service(db):
    return SplitService(DjangoSplitStore())


@pytest.fixture
def coordinator(split_service, processor):
    return SettlementCoordinator(
        split_service,
        processor,
        CompanyPaymentDirectory(),
        frontend_url='https://app.test/',
    )


# =============================================================================
# Users and companies
# =============================================================================

@pytest.fixture
def organizer_user(db):
    return User.objects.create_user(username='organizer', password='TestPass123!')


@pytest.fixture
def payer_user(db):
    return User.objects.create_user(username='payer', password='TestPass123!')


@pytest.fixture
def second_payer_user(db):
    return User.objects.create_user(username='second-payer', password='TestPass123!')


@pytest.fixture
def organizer_company(organizer_user):
    """Organizer that finished payout onboarding."""
    return Company.objects.create(
        owner=organizer_user,
        name='Oat & Co',
        email='hello@oat.example',
        stripe_connect_id='acct_organizer',
        stripe_onboarded=True,
    )


@pytest.fixture
def payer_company(payer_user):
    return Company.objects.create(owner=payer_user, name='Fizz Soda', email='team@fizz.example')


@pytest.fixture
def second_payer_company(second_payer_user):
    return Company.objects.create(owner=second_payer_user, name='Crunch Bars', email='hi@crunch.example')


@pytest.fixture
def organizer_client(client_for, organizer_user):
    return client_for(organizer_user)


@pytest.fixture
def payer_client(client_for, payer_user):
    return client_for(payer_user)


# =============================================================================
# Splits
# =============================================================================

@pytest.fixture
def open_split(split_service, organizer_company):
    """3 slots at 334 each, organizer only."""
    return split_service.create_split(
        organizer_id=str(organizer_company.id),
        title='Spring lookbook shoot',
        type='content',
        total_cost=1000,
        slots=3,
    )


@pytest.fixture
def full_split(split_service, open_split, payer_company, second_payer_company):
    split_service.join_split(split_id=open_split.id, company_id=str(payer_company.id))
    return split_service.join_split(split_id=open_split.id, company_id=str(second_payer_company.id))
