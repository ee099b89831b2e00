from django.core.validators import MinValueValidator
from django.db import models
import uuid

from .domain import MIN_SLOTS, SplitStatus, SplitType


class SplitTypeChoices(models.TextChoices):
    CONTENT = SplitType.CONTENT.value, 'Content'
    HOUSING = SplitType.HOUSING.value, 'Housing'
    POPUP = SplitType.POPUP.value, 'Pop-up'
    OTHER = SplitType.OTHER.value, 'Other'


class SplitStatusChoices(models.TextChoices):
    OPEN = SplitStatus.OPEN.value, 'Open'
    FULL = SplitStatus.FULL.value, 'Full'
    COMPLETED = SplitStatus.COMPLETED.value, 'Completed'
    CANCELLED = SplitStatus.CANCELLED.value, 'Cancelled'


class SplitRecord(models.Model):
    """
    Persisted split document.

    Participants are stored inline as JSON so a split is written as a
    single row; ``version`` guards every write (compare-and-swap).
    Domain logic lives in ``apps.splits.domain``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    version = models.PositiveIntegerField(default=1)

    # Descriptive data
    title = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=SplitTypeChoices.choices)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=200, blank=True)
    event_date = models.DateField(null=True, blank=True)
    deadline = models.DateField(null=True, blank=True)
    vendor_name = models.CharField(max_length=200, null=True, blank=True)
    vendor_details = models.TextField(null=True, blank=True)

    # Slot accounting
    total_cost = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    slots = models.PositiveIntegerField(validators=[MinValueValidator(MIN_SLOTS)])
    cost_per_slot = models.PositiveIntegerField()
    filled_slots = models.PositiveIntegerField(default=1)
    organizer_id = models.CharField(max_length=64)
    participants = models.JSONField(default=list)
    status = models.CharField(
        max_length=20,
        choices=SplitStatusChoices.choices,
        default=SplitStatusChoices.OPEN
    )

    # Timestamps
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        db_table = 'splits'
        indexes = [
            models.Index(fields=['status', 'created_at'], name='splits_status_created_idx'),
            models.Index(fields=['type', 'created_at'], name='splits_type_created_idx'),
            models.Index(fields=['organizer_id'], name='splits_organizer_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.filled_slots}/{self.slots}, {self.status})"
