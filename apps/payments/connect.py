"""
Payout account onboarding for organizers.

An organizer can only collect payments once its company has a connected
account with charges and payouts enabled. The flag is mirrored onto the
company row whenever the status is checked.
"""

import logging
from typing import Optional

from django.conf import settings

from apps.companies.exceptions import ConnectAccountExistsError, ConnectAccountMissingError
from apps.companies.models import Company
from apps.companies.services import attach_connect_account, sync_onboarding_status

from .processor import PaymentProcessor, build_payment_processor

logger = logging.getLogger(__name__)


class ConnectOnboardingService:
    """Creates and inspects a company's connected payout account."""

    def __init__(self, processor: PaymentProcessor, *, frontend_url: str = '') -> None:
        self._processor = processor
        self._frontend_url = frontend_url.rstrip('/')

    def create_account(self, *, company: Company, email: Optional[str] = None,
                       business_name: Optional[str] = None) -> str:
        """
        Raises:
            ConnectAccountExistsError: If the company already has an account
            PaymentProcessorError: If the processor rejects the request
        """
        if company.stripe_connect_id:
            raise ConnectAccountExistsError("Company already has Stripe Connect account")

        account_id = self._processor.create_connected_account(
            email=email or company.email,
            business_name=business_name or company.name,
        )
        attach_connect_account(company_id=company.id, account_id=account_id)
        logger.info("Connected account %s created for company %s", account_id, company.id)
        return account_id

    def onboarding_link(self, *, company: Company, return_url: Optional[str] = None,
                        refresh_url: Optional[str] = None) -> str:
        """
        Raises:
            ConnectAccountMissingError: If no account was created yet
        """
        account_id = self._require_account(company)
        return self._processor.create_onboarding_link(
            account_id=account_id,
            return_url=return_url or f'{self._frontend_url}/settings?onboarding=complete',
            refresh_url=refresh_url or f'{self._frontend_url}/settings?onboarding=refresh',
        )

    def account_status(self, *, company: Company) -> dict:
        """Fetch the live account status and store the onboarding flag."""
        if not company.stripe_connect_id:
            return {'has_account': False, 'onboarded': False}

        status = self._processor.retrieve_account_status(company.stripe_connect_id)
        sync_onboarding_status(company=company, onboarded=status.onboarded)
        return {
            'has_account': True,
            'account_id': status.account_id,
            'onboarded': status.onboarded,
            'charges_enabled': status.charges_enabled,
            'payouts_enabled': status.payouts_enabled,
        }

    def dashboard_link(self, *, company: Company) -> str:
        account_id = self._require_account(company)
        return self._processor.create_dashboard_link(account_id)

    def _require_account(self, company: Company) -> str:
        if not company.stripe_connect_id:
            raise ConnectAccountMissingError("No Stripe Connect account. Create one first.")
        return company.stripe_connect_id


def build_connect_service() -> ConnectOnboardingService:
    return ConnectOnboardingService(build_payment_processor(), frontend_url=settings.FRONTEND_URL)
