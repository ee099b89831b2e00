"""
Company services.

Ownership checks for acting on behalf of a company, and the payment
destination lookup the settlement coordinator uses to decide whether an
organizer can receive funds.
"""

from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from .exceptions import (
    CompanyNotFoundError,
    ConnectAccountExistsError,
    NotCompanyOwnerError,
)
from .models import Company


def get_company(*, company_id) -> Company:
    """
    Raises:
        CompanyNotFoundError: If company doesn't exist or the ID is malformed
    """
    try:
        return Company.objects.get(id=company_id)
    except (Company.DoesNotExist, ValueError, DjangoValidationError):
        raise CompanyNotFoundError(f"Company {company_id} not found")


def get_owned_company(*, user, company_id) -> Company:
    """
    Get a company the user is allowed to act for.

    Args:
        user: Authenticated user
        company_id: Company the request claims to act as

    Returns:
        Company instance

    Raises:
        CompanyNotFoundError: If company doesn't exist
        NotCompanyOwnerError: If user does not own the company
    """
    company = get_company(company_id=company_id)
    if company.owner_id != user.id:
        raise NotCompanyOwnerError("You can only act on behalf of your own company")
    return company


@transaction.atomic
def attach_connect_account(*, company_id: UUID, account_id: str) -> Company:
    """
    Store a newly created Stripe Connect account on the company.

    Raises:
        CompanyNotFoundError: If company doesn't exist
        ConnectAccountExistsError: If the company already has an account
    """
    try:
        company = Company.objects.select_for_update().get(id=company_id)
    except Company.DoesNotExist:
        raise CompanyNotFoundError(f"Company {company_id} not found")

    if company.stripe_connect_id:
        raise ConnectAccountExistsError("Company already has Stripe Connect account")

    company.stripe_connect_id = account_id
    company.stripe_onboarded = False
    company.save(update_fields=['stripe_connect_id', 'stripe_onboarded', 'updated_at'])
    return company


def sync_onboarding_status(*, company: Company, onboarded: bool) -> Company:
    """Persist the onboarding flag only when it changed."""
    if company.stripe_onboarded != onboarded:
        company.stripe_onboarded = onboarded
        company.save(update_fields=['stripe_onboarded', 'updated_at'])
    return company


class CompanyPaymentDirectory:
    """Organizer readiness lookup backed by the companies table."""

    def get_payment_account(self, company_id: str) -> Optional[str]:
        """Return the company's payment account if it can receive funds."""
        try:
            company = get_company(company_id=company_id)
        except CompanyNotFoundError:
            return None
        if not company.is_payment_ready:
            return None
        return company.stripe_connect_id

    def is_payment_ready(self, company_id: str) -> bool:
        return self.get_payment_account(company_id) is not None
