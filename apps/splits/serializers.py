from rest_framework import serializers

from .domain import MIN_SLOTS, SplitStatus, SplitType


# =============================================================================
# Output serializers (domain -> JSON)
# =============================================================================

class ParticipantSerializer(serializers.Serializer):
    """A participant slot of a split."""

    company_id = serializers.CharField(read_only=True)
    joined_at = serializers.DateTimeField(read_only=True)
    paid = serializers.BooleanField(read_only=True)
    paid_at = serializers.DateTimeField(read_only=True, allow_null=True)
    payment_reference = serializers.CharField(read_only=True, allow_null=True)


class SplitSerializer(serializers.Serializer):
    """Full split representation."""

    id = serializers.CharField(read_only=True)
    title = serializers.CharField(read_only=True)
    type = serializers.CharField(source='type.value', read_only=True)
    description = serializers.CharField(read_only=True)
    location = serializers.CharField(read_only=True)
    event_date = serializers.DateField(read_only=True, allow_null=True)
    deadline = serializers.DateField(read_only=True, allow_null=True)
    vendor_name = serializers.CharField(read_only=True, allow_null=True)
    vendor_details = serializers.CharField(read_only=True, allow_null=True)
    total_cost = serializers.IntegerField(read_only=True)
    slots = serializers.IntegerField(read_only=True)
    cost_per_slot = serializers.IntegerField(read_only=True)
    filled_slots = serializers.IntegerField(read_only=True)
    organizer_id = serializers.CharField(read_only=True)
    participants = ParticipantSerializer(many=True, read_only=True)
    status = serializers.CharField(source='status.value', read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)


class SplitListSerializer(serializers.Serializer):
    """Lightweight serializer for list views."""

    id = serializers.CharField(read_only=True)
    title = serializers.CharField(read_only=True)
    type = serializers.CharField(source='type.value', read_only=True)
    location = serializers.CharField(read_only=True)
    event_date = serializers.DateField(read_only=True, allow_null=True)
    cost_per_slot = serializers.IntegerField(read_only=True)
    slots = serializers.IntegerField(read_only=True)
    filled_slots = serializers.IntegerField(read_only=True)
    organizer_id = serializers.CharField(read_only=True)
    status = serializers.CharField(source='status.value', read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


# =============================================================================
# Input serializers
# =============================================================================

class SplitCreateSerializer(serializers.Serializer):
    """Input for creating a split."""

    organizer_id = serializers.UUIDField()
    title = serializers.CharField(max_length=200)
    type = serializers.ChoiceField(choices=[t.value for t in SplitType])
    total_cost = serializers.IntegerField(min_value=1)
    slots = serializers.IntegerField(min_value=MIN_SLOTS)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    location = serializers.CharField(required=False, allow_blank=True, default='', max_length=200)
    event_date = serializers.DateField(required=False, allow_null=True, default=None)
    deadline = serializers.DateField(required=False, allow_null=True, default=None)
    vendor_name = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)
    vendor_details = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)


class CompanyActionSerializer(serializers.Serializer):
    """Input naming the company a request acts for."""

    company_id = serializers.UUIDField()


class SplitFilterSerializer(serializers.Serializer):
    """Query parameters for listing splits ('all' means no filter)."""

    type = serializers.ChoiceField(
        choices=['all'] + [t.value for t in SplitType],
        required=False
    )
    status = serializers.ChoiceField(
        choices=['all'] + [s.value for s in SplitStatus],
        required=False
    )
    location = serializers.CharField(required=False, allow_blank=True)
    company_id = serializers.UUIDField(required=False)
