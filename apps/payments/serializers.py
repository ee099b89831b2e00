from rest_framework import serializers


# =============================================================================
# Input serializers
# =============================================================================

class PayerSerializer(serializers.Serializer):
    """Company paying for its slot."""

    company_id = serializers.UUIDField()


class ConfirmPaymentSerializer(serializers.Serializer):
    """Client-side return from checkout; re-verified with the processor."""

    company_id = serializers.UUIDField()
    payment_reference = serializers.CharField(max_length=255)


class ConnectCreateSerializer(serializers.Serializer):
    company_id = serializers.UUIDField()
    email = serializers.EmailField(required=False)
    business_name = serializers.CharField(required=False, max_length=200)


class ConnectOnboardingSerializer(serializers.Serializer):
    company_id = serializers.UUIDField()
    return_url = serializers.URLField(required=False)
    refresh_url = serializers.URLField(required=False)


# =============================================================================
# Response serializers
# =============================================================================

class CheckoutSessionSerializer(serializers.Serializer):
    session_id = serializers.CharField(read_only=True)
    url = serializers.CharField(source='redirect_url', read_only=True)


class ConnectStatusSerializer(serializers.Serializer):
    has_account = serializers.BooleanField()
    account_id = serializers.CharField(required=False)
    onboarded = serializers.BooleanField()
    charges_enabled = serializers.BooleanField(required=False)
    payouts_enabled = serializers.BooleanField(required=False)


class LinkSerializer(serializers.Serializer):
    url = serializers.CharField()


class PaymentHistorySerializer(serializers.Serializer):
    """A paid slot in a company's payment history."""

    split_id = serializers.CharField()
    split_title = serializers.CharField()
    split_type = serializers.CharField()
    amount = serializers.IntegerField()
    paid_at = serializers.DateTimeField(allow_null=True)
    payment_reference = serializers.CharField(allow_null=True)
    status = serializers.CharField()
