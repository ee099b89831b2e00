from django.conf import settings
from django.db import models
import uuid


class Company(models.Model):
    """A company taking part in splits, owned by one user."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='companies'
    )
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)

    # Stripe Connect (payment destination for splits this company organizes)
    stripe_connect_id = models.CharField(max_length=255, blank=True, db_index=True)
    stripe_onboarded = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'companies'
        verbose_name_plural = 'companies'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_payment_ready(self):
        """Whether payments can be routed to this company."""
        return bool(self.stripe_connect_id) and self.stripe_onboarded
