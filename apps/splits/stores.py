"""
Split stores (repository pattern).

Stores are swappable and return domain ``Split`` values. Every write is a
compare-and-swap on ``version``: a write only lands if the stored version
still equals the version the caller read.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError

from .domain import Participant, Split, SplitStatus, SplitType
from .models import SplitRecord

DEFAULT_LIST_LIMIT = 100


class SplitStore(ABC):
    """Interface for split persistence operations."""

    @abstractmethod
    def get(self, split_id: str) -> Optional[Split]:
        """Return a split by ID, or None if not found."""
        ...

    @abstractmethod
    def add(self, split: Split) -> Split:
        """Persist a new split and return it with its stored version."""
        ...

    @abstractmethod
    def put_if_unchanged(self, split_id: str, expected_version: int, new_state: Split) -> Optional[Split]:
        """Write new_state if the stored version is still expected_version.

        Returns the stored split (with its new version), or None on conflict.
        """
        ...

    @abstractmethod
    def delete_if_unchanged(self, split_id: str, expected_version: int) -> bool:
        """Delete the split if the stored version is still expected_version."""
        ...

    @abstractmethod
    def list(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        company_id: Optional[str] = None,
        location: Optional[str] = None,
        limit: Optional[int] = DEFAULT_LIST_LIMIT,
    ) -> List[Split]:
        """Return splits, newest first, matching the given filters."""
        ...


def _matches(split: Split, company_id: Optional[str], location: Optional[str]) -> bool:
    if company_id and split.organizer_id != company_id and not split.has_participant(company_id):
        return False
    if location and location.lower() not in (split.location or '').lower():
        return False
    return True


# =============================================================================
# Django ORM store
# =============================================================================

def participant_to_json(participant: Participant) -> dict:
    return {
        'company_id': participant.company_id,
        'joined_at': participant.joined_at.isoformat(),
        'paid': participant.paid,
        'paid_at': participant.paid_at.isoformat() if participant.paid_at else None,
        'payment_reference': participant.payment_reference,
    }


def participant_from_json(data: dict) -> Participant:
    paid_at = data.get('paid_at')
    return Participant(
        company_id=data['company_id'],
        joined_at=datetime.fromisoformat(data['joined_at']),
        paid=bool(data.get('paid', False)),
        paid_at=datetime.fromisoformat(paid_at) if paid_at else None,
        payment_reference=data.get('payment_reference'),
    )


def _as_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def record_to_split(record: SplitRecord) -> Split:
    return Split(
        id=str(record.id),
        title=record.title,
        type=SplitType(record.type),
        total_cost=record.total_cost,
        slots=record.slots,
        cost_per_slot=record.cost_per_slot,
        organizer_id=record.organizer_id,
        participants=tuple(participant_from_json(p) for p in record.participants),
        status=SplitStatus(record.status),
        created_at=record.created_at,
        updated_at=record.updated_at,
        description=record.description,
        location=record.location,
        event_date=_as_date(record.event_date),
        deadline=_as_date(record.deadline),
        vendor_name=record.vendor_name,
        vendor_details=record.vendor_details,
        version=record.version,
    )


def _mutable_fields(split: Split) -> dict:
    """Columns that may change after creation."""
    return {
        'participants': [participant_to_json(p) for p in split.participants],
        'filled_slots': split.filled_slots,
        'status': split.status.value,
        'updated_at': split.updated_at,
    }


class DjangoSplitStore(SplitStore):
    """Database-backed split store using Django ORM."""

    def get(self, split_id: str) -> Optional[Split]:
        try:
            record = SplitRecord.objects.get(id=split_id)
        except (SplitRecord.DoesNotExist, ValueError, DjangoValidationError):
            # Malformed UUIDs are treated as missing
            return None
        return record_to_split(record)

    def add(self, split: Split) -> Split:
        record = SplitRecord.objects.create(
            id=split.id,
            version=1,
            title=split.title,
            type=split.type.value,
            description=split.description,
            location=split.location,
            event_date=split.event_date,
            deadline=split.deadline,
            vendor_name=split.vendor_name,
            vendor_details=split.vendor_details,
            total_cost=split.total_cost,
            slots=split.slots,
            cost_per_slot=split.cost_per_slot,
            organizer_id=split.organizer_id,
            created_at=split.created_at,
            **_mutable_fields(split),
        )
        return replace(split, version=record.version)

    def put_if_unchanged(self, split_id: str, expected_version: int, new_state: Split) -> Optional[Split]:
        # A single UPDATE ... WHERE version = expected is atomic on every backend
        updated = (
            SplitRecord.objects
            .filter(id=split_id, version=expected_version)
            .update(version=expected_version + 1, **_mutable_fields(new_state))
        )
        if updated != 1:
            return None
        return replace(new_state, version=expected_version + 1)

    def delete_if_unchanged(self, split_id: str, expected_version: int) -> bool:
        deleted, _ = SplitRecord.objects.filter(id=split_id, version=expected_version).delete()
        return deleted > 0

    def list(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        company_id: Optional[str] = None,
        location: Optional[str] = None,
        limit: Optional[int] = DEFAULT_LIST_LIMIT,
    ) -> List[Split]:
        queryset = SplitRecord.objects.order_by('-created_at')
        if status:
            queryset = queryset.filter(status=status)
        if type:
            queryset = queryset.filter(type=type)

        # Participation and location are matched in Python: participants
        # live in a JSON column that SQLite cannot query portably.
        splits = [record_to_split(record) for record in queryset[:limit]]
        return [s for s in splits if _matches(s, company_id, location)]


# =============================================================================
# In-memory store
# =============================================================================

class InMemorySplitStore(SplitStore):
    """Thread-safe in-process split store with the same CAS semantics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._splits: Dict[str, Split] = {}

    def get(self, split_id: str) -> Optional[Split]:
        with self._lock:
            return self._splits.get(str(split_id))

    def add(self, split: Split) -> Split:
        stored = replace(split, version=1)
        with self._lock:
            self._splits[stored.id] = stored
        return stored

    def put_if_unchanged(self, split_id: str, expected_version: int, new_state: Split) -> Optional[Split]:
        with self._lock:
            current = self._splits.get(str(split_id))
            if current is None or current.version != expected_version:
                return None
            stored = replace(new_state, version=expected_version + 1)
            self._splits[stored.id] = stored
            return stored

    def delete_if_unchanged(self, split_id: str, expected_version: int) -> bool:
        with self._lock:
            current = self._splits.get(str(split_id))
            if current is None or current.version != expected_version:
                return False
            del self._splits[current.id]
            return True

    def list(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        company_id: Optional[str] = None,
        location: Optional[str] = None,
        limit: Optional[int] = DEFAULT_LIST_LIMIT,
    ) -> List[Split]:
        with self._lock:
            splits = sorted(self._splits.values(), key=lambda s: s.created_at, reverse=True)
        if status:
            splits = [s for s in splits if s.status.value == status]
        if type:
            splits = [s for s in splits if s.type.value == type]
        return [s for s in splits[:limit] if _matches(s, company_id, location)]
