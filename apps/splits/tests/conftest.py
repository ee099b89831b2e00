import pytest
from datetime import datetime, timedelta, timezone as dt_timezone
from django.contrib.auth import get_user_model

from apps.companies.models import Company
from apps.splits.services import SplitService
from apps.splits.stores import DjangoSplitStore, InMemorySplitStore

User = get_user_model()


class StepClock:
    """Deterministic clock: every call is one second later."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=dt_timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def memory_service(clock):
    """Split service over an in-memory store."""
    return SplitService(InMemorySplitStore(), clock=clock)


@pytest.fixture
def db_service(db, clock):
    """Split service over the database store."""
    return SplitService(DjangoSplitStore(), clock=clock)


@pytest.fixture
def split_kwargs():
    """Valid creation input, minus the organizer."""
    return {
        'title': 'Spring lookbook shoot',
        'type': 'content',
        'total_cost': 1000,
        'slots': 3,
        'location': 'Austin, TX',
    }


# =============================================================================
# Users and companies
# =============================================================================

@pytest.fixture
def organizer_user(db):
    return User.objects.create_user(username='organizer', password='TestPass123!')


@pytest.fixture
def member_user(db):
    return User.objects.create_user(username='member', password='TestPass123!')


@pytest.fixture
def outsider_user(db):
    return User.objects.create_user(username='outsider', password='TestPass123!')


@pytest.fixture
def organizer_company(organizer_user):
    return Company.objects.create(owner=organizer_user, name='Oat & Co', email='hello@oat.example')


@pytest.fixture
def member_company(member_user):
    return Company.objects.create(owner=member_user, name='Fizz Soda', email='team@fizz.example')


@pytest.fixture
def outsider_company(outsider_user):
    return Company.objects.create(owner=outsider_user, name='Crunch Bars', email='hi@crunch.example')


@pytest.fixture
def organizer_client(client_for, organizer_user):
    return client_for(organizer_user)


@pytest.fixture
def member_client(client_for, member_user):
    return client_for(member_user)


@pytest.fixture
def outsider_client(client_for, outsider_user):
    return client_for(outsider_user)


@pytest.fixture
def open_split(db_service, organizer_company, split_kwargs):
    """A 3-slot split with only the organizer in it."""
    return db_service.create_split(organizer_id=str(organizer_company.id), **split_kwargs)
