from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.companies.exceptions import CompanyServiceError
from apps.companies.services import get_owned_company
from apps.splits.exceptions import SplitServiceError
from apps.splits.serializers import SplitSerializer
from apps.splits.services import build_split_service
from config.views import service_error_response

from .connect import build_connect_service
from .exceptions import PaymentServiceError
from .serializers import (
    CheckoutSessionSerializer,
    ConfirmPaymentSerializer,
    ConnectCreateSerializer,
    ConnectOnboardingSerializer,
    ConnectStatusSerializer,
    LinkSerializer,
    PayerSerializer,
    PaymentHistorySerializer,
)
from .settlement import build_settlement_coordinator

SERVICE_ERRORS = (CompanyServiceError, SplitServiceError, PaymentServiceError)


# =============================================================================
# Split payments
# =============================================================================

@extend_schema(
    request=PayerSerializer,
    responses={200: CheckoutSessionSerializer},
    description="Start checkout for the caller's slot in a full split.",
    tags=['payments'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def pay_split(request, split_id):
    """Create a checkout session for a participant's share."""
    serializer = PayerSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        company = get_owned_company(user=request.user, company_id=serializer.validated_data['company_id'])
        session = build_settlement_coordinator().initiate_payment(
            split_id=str(split_id),
            company_id=str(company.id),
        )
    except SERVICE_ERRORS as e:
        return service_error_response(e)

    return Response(CheckoutSessionSerializer(session).data)


@extend_schema(
    request=ConfirmPaymentSerializer,
    responses={200: SplitSerializer},
    description="Apply a payment after the processor confirms it succeeded.",
    tags=['payments'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def confirm_split_payment(request, split_id):
    """Confirm a payment on return from checkout."""
    serializer = ConfirmPaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        company = get_owned_company(user=request.user, company_id=data['company_id'])
        split = build_settlement_coordinator().confirm_payment(
            split_id=str(split_id),
            company_id=str(company.id),
            payment_reference=data['payment_reference'],
        )
    except SERVICE_ERRORS as e:
        return service_error_response(e)

    if split is None:
        return Response({'error': 'Split no longer exists', 'code': 'split_not_found'},
                        status=status.HTTP_404_NOT_FOUND)
    return Response(SplitSerializer(split).data)


@extend_schema(exclude=True)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def webhook(request):
    """Processor webhook; authenticated by its signature only."""
    signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')
    try:
        coordinator = build_settlement_coordinator()
        event = coordinator.parse_event(request.body, signature)
        coordinator.handle_event(event)
    except (SplitServiceError, PaymentServiceError) as e:
        return service_error_response(e)

    return Response({'received': True})


@extend_schema(
    responses={200: PaymentHistorySerializer(many=True)},
    description="Slots a company has paid for, newest first.",
    tags=['payments'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_history(request, company_id):
    """Get payment history for one of the caller's companies."""
    try:
        company = get_owned_company(user=request.user, company_id=company_id)
    except CompanyServiceError as e:
        return service_error_response(e)

    payments = build_split_service().payment_history(company_id=str(company.id))
    return Response(PaymentHistorySerializer(payments, many=True).data)


# =============================================================================
# Payout account onboarding
# =============================================================================

@extend_schema(request=ConnectCreateSerializer, responses={201: None}, tags=['payments'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def connect_create(request):
    """Create a payout account for a company."""
    serializer = ConnectCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        company = get_owned_company(user=request.user, company_id=data['company_id'])
        account_id = build_connect_service().create_account(
            company=company,
            email=data.get('email'),
            business_name=data.get('business_name'),
        )
    except SERVICE_ERRORS as e:
        return service_error_response(e)

    return Response({
        'account_id': account_id,
        'message': 'Stripe Connect account created. Complete onboarding to receive payments.',
    }, status=status.HTTP_201_CREATED)


@extend_schema(request=ConnectOnboardingSerializer, responses={200: LinkSerializer}, tags=['payments'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def connect_onboarding(request):
    """Get an onboarding link for the company's payout account."""
    serializer = ConnectOnboardingSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        company = get_owned_company(user=request.user, company_id=data['company_id'])
        url = build_connect_service().onboarding_link(
            company=company,
            return_url=data.get('return_url'),
            refresh_url=data.get('refresh_url'),
        )
    except SERVICE_ERRORS as e:
        return service_error_response(e)

    return Response({'url': url})


@extend_schema(responses={200: ConnectStatusSerializer}, tags=['payments'])
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def connect_status(request, company_id):
    """Check (and store) whether a company can receive payouts."""
    try:
        company = get_owned_company(user=request.user, company_id=company_id)
        if not company.stripe_connect_id:
            return Response({'has_account': False, 'onboarded': False})
        account_status = build_connect_service().account_status(company=company)
    except SERVICE_ERRORS as e:
        return service_error_response(e)

    return Response(account_status)


@extend_schema(request=PayerSerializer, responses={200: LinkSerializer}, tags=['payments'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def connect_dashboard(request):
    """Get a login link to the payout dashboard."""
    serializer = PayerSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        company = get_owned_company(user=request.user, company_id=serializer.validated_data['company_id'])
        url = build_connect_service().dashboard_link(company=company)
    except SERVICE_ERRORS as e:
        return service_error_response(e)

    return Response({'url': url})
