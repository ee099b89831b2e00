import json
import pytest
from django.test import override_settings
from django.urls import reverse
from rest_framework import status

from apps.companies.models import Company
from apps.payments.processor import AccountStatus, EventType

from .conftest import VALID_SIGNATURE


def webhook_post(client, body, signature=VALID_SIGNATURE):
    return client.post(
        reverse('payments:webhook'),
        data=json.dumps(body),
        content_type='application/json',
        HTTP_STRIPE_SIGNATURE=signature,
    )


# =============================================================================
# Split payments
# =============================================================================

@pytest.mark.django_db
class TestPaySplit:
    """Tests for POST /api/payments/splits/{id}/pay/"""

    def test_pay_returns_checkout_url(self, payer_client, processor, full_split, payer_company):
        url = reverse('payments:pay', kwargs={'split_id': full_split.id})
        response = payer_client.post(url, {'company_id': str(payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['session_id'] == 'cs_test_1'
        assert response.data['url'] == 'https://checkout.test/cs_test_1'

    def test_pay_open_split(self, payer_client, processor, split_service, open_split, payer_company):
        split_service.join_split(split_id=open_split.id, company_id=str(payer_company.id))
        url = reverse('payments:pay', kwargs={'split_id': open_split.id})
        response = payer_client.post(url, {'company_id': str(payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'split_not_full'

    def test_pay_for_foreign_company(self, payer_client, processor, full_split, second_payer_company):
        url = reverse('payments:pay', kwargs={'split_id': full_split.id})
        response = payer_client.post(url, {'company_id': str(second_payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert processor.sessions == []

    def test_pay_requires_authentication(self, api_client, processor, full_split, payer_company):
        url = reverse('payments:pay', kwargs={'split_id': full_split.id})
        response = api_client.post(url, {'company_id': str(payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @override_settings(STRIPE_SECRET_KEY='')
    def test_payments_not_configured(self, payer_client, full_split, payer_company):
        url = reverse('payments:pay', kwargs={'split_id': full_split.id})
        response = payer_client.post(url, {'company_id': str(payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['code'] == 'payments_not_configured'


@pytest.mark.django_db
class TestConfirmSplitPayment:
    """Tests for POST /api/payments/splits/{id}/confirm/"""

    def test_confirm_verified_payment(self, payer_client, processor, full_split, payer_company):
        processor.record_payment('pi_1', split_id=full_split.id, company_id=payer_company.id)
        url = reverse('payments:confirm', kwargs={'split_id': full_split.id})
        response = payer_client.post(
            url, {'company_id': str(payer_company.id), 'payment_reference': 'pi_1'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        payer = next(p for p in response.data['participants'] if p['company_id'] == str(payer_company.id))
        assert payer['paid'] is True
        assert payer['payment_reference'] == 'pi_1'

    def test_confirm_unverified_payment(self, payer_client, processor, full_split, payer_company):
        processor.record_payment(
            'pi_1', split_id=full_split.id, company_id=payer_company.id, status='requires_action'
        )
        url = reverse('payments:confirm', kwargs={'split_id': full_split.id})
        response = payer_client.post(
            url, {'company_id': str(payer_company.id), 'payment_reference': 'pi_1'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'payment_not_verified'

    def test_confirm_unknown_payment(self, payer_client, processor, full_split, payer_company):
        url = reverse('payments:confirm', kwargs={'split_id': full_split.id})
        response = payer_client.post(
            url, {'company_id': str(payer_company.id), 'payment_reference': 'pi_missing'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'payment_not_verified'


@pytest.mark.django_db
class TestWebhook:
    """Tests for POST /api/payments/webhook/"""

    def test_succeeded_event_marks_paid(self, api_client, processor, split_service, full_split, payer_company):
        processor.record_payment('pi_1', split_id=full_split.id, company_id=payer_company.id)
        response = webhook_post(api_client, {
            'type': EventType.PAYMENT_SUCCEEDED,
            'source_type': 'payment_intent.succeeded',
            'reference': 'pi_1',
            'metadata': {'splitId': full_split.id, 'companyId': str(payer_company.id)},
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'received': True}
        split = split_service.get_split(split_id=full_split.id)
        assert split.participant(str(payer_company.id)).paid is True

    def test_duplicate_delivery_is_harmless(self, api_client, processor, split_service, full_split, payer_company):
        processor.record_payment('pi_1', split_id=full_split.id, company_id=payer_company.id)
        body = {
            'type': EventType.PAYMENT_SUCCEEDED,
            'reference': 'pi_1',
            'metadata': {'splitId': full_split.id, 'companyId': str(payer_company.id)},
        }

        webhook_post(api_client, body)
        version = split_service.get_split(split_id=full_split.id).version
        response = webhook_post(api_client, body)

        assert response.status_code == status.HTTP_200_OK
        assert split_service.get_split(split_id=full_split.id).version == version

    def test_bad_signature(self, api_client, processor, split_service, full_split, payer_company):
        processor.record_payment('pi_1', split_id=full_split.id, company_id=payer_company.id)
        response = webhook_post(api_client, {
            'type': EventType.PAYMENT_SUCCEEDED,
            'reference': 'pi_1',
            'metadata': {'splitId': full_split.id, 'companyId': str(payer_company.id)},
        }, signature='forged')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_webhook_signature'
        split = split_service.get_split(split_id=full_split.id)
        assert split.participant(str(payer_company.id)).paid is False

    def test_ignored_event_type(self, api_client, processor):
        response = webhook_post(api_client, {'type': EventType.IGNORED, 'source_type': 'customer.created'})

        assert response.status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestPaymentHistory:
    """Tests for GET /api/payments/history/{company_id}/"""

    def test_history_lists_paid_slots(self, payer_client, split_service, full_split, payer_company):
        split_service.apply_payment(
            split_id=full_split.id, company_id=str(payer_company.id), payment_reference='pi_1'
        )
        url = reverse('payments:history', kwargs={'company_id': payer_company.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['split_id'] == full_split.id
        assert response.data[0]['amount'] == 334
        assert response.data[0]['split_type'] == 'content'

    def test_history_of_foreign_company(self, payer_client, second_payer_company):
        url = reverse('payments:history', kwargs={'company_id': second_payer_company.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Payout account onboarding
# =============================================================================

@pytest.mark.django_db
class TestConnectOnboarding:
    """Tests for /api/payments/connect/*"""

    def test_create_account(self, payer_client, processor, payer_company):
        url = reverse('payments:connect-create')
        response = payer_client.post(url, {'company_id': str(payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        payer_company.refresh_from_db()
        assert payer_company.stripe_connect_id == response.data['account_id']
        assert payer_company.stripe_onboarded is False

    def test_create_account_twice(self, organizer_client, processor, organizer_company):
        url = reverse('payments:connect-create')
        response = organizer_client.post(url, {'company_id': str(organizer_company.id)}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'connect_account_exists'

    def test_onboarding_link_requires_account(self, payer_client, processor, payer_company):
        url = reverse('payments:connect-onboarding')
        response = payer_client.post(url, {'company_id': str(payer_company.id)}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'connect_account_missing'

    def test_onboarding_link(self, payer_client, processor, payer_company):
        payer_client.post(reverse('payments:connect-create'), {'company_id': str(payer_company.id)}, format='json')
        response = payer_client.post(
            reverse('payments:connect-onboarding'), {'company_id': str(payer_company.id)}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['url'].startswith('https://connect.test/onboard/acct_test_1')

    def test_status_without_account(self, payer_client, payer_company):
        url = reverse('payments:connect-status', kwargs={'company_id': payer_company.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'has_account': False, 'onboarded': False}

    def test_status_syncs_onboarding_flag(self, payer_client, processor, payer_company):
        payer_client.post(reverse('payments:connect-create'), {'company_id': str(payer_company.id)}, format='json')
        payer_company.refresh_from_db()
        account = processor.accounts[payer_company.stripe_connect_id]
        processor.accounts[account.account_id] = AccountStatus(
            account.account_id, charges_enabled=True, payouts_enabled=True
        )

        url = reverse('payments:connect-status', kwargs={'company_id': payer_company.id})
        response = payer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['onboarded'] is True
        assert Company.objects.get(id=payer_company.id).stripe_onboarded is True

    def test_dashboard_link(self, organizer_client, processor, organizer_company):
        url = reverse('payments:connect-dashboard')
        response = organizer_client.post(url, {'company_id': str(organizer_company.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['url'] == 'https://connect.test/dashboard/acct_organizer'
