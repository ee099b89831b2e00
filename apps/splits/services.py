"""
Split service.

Runs split aggregate operations against a ``SplitStore`` with optimistic
concurrency: each mutation reads the current split, validates and applies
the operation in memory, and writes back only if nobody else wrote in
between. Conflicts are retried against fresh state a bounded number of
times before ``ConcurrentModificationError`` is raised.

Example::

    service = build_split_service()
    split = service.create_split(
        organizer_id=str(company.id),
        title='Spring lookbook shoot',
        type='content',
        total_cost=1200,
        slots=4,
    )
    split = service.join_split(split_id=split.id, company_id=str(other.id))
"""

import logging
import uuid
from datetime import date, datetime
from typing import Callable, List, Optional

from django.conf import settings
from django.utils import timezone

from .domain import Split
from .exceptions import ConcurrentModificationError, SplitNotFoundError
from .stores import DjangoSplitStore, SplitStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class SplitService:
    """Entry point for every split read and state transition."""

    def __init__(
        self,
        store: SplitStore,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self._store = store
        self._max_attempts = max_attempts
        self._clock = clock

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_split(self, *, split_id: str) -> Split:
        """
        Raises:
            SplitNotFoundError: If the split doesn't exist.
        """
        split = self._store.get(split_id)
        if split is None:
            raise SplitNotFoundError(f"Split {split_id} not found")
        return split

    def list_splits(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        company_id: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[Split]:
        return self._store.list(status=status, type=type, company_id=company_id, location=location)

    def payment_history(self, *, company_id: str) -> List[dict]:
        """
        Payments a company has made, newest first.

        Args:
            company_id: Company whose paid participations are listed

        Returns:
            List of dicts with split_id, split_title, split_type, amount,
            paid_at, payment_reference and status.
        """
        payments = []
        for split in self._store.list(company_id=company_id, limit=None):
            participant = split.participant(company_id)
            if participant is None or not participant.paid:
                continue
            payments.append({
                'split_id': split.id,
                'split_title': split.title,
                'split_type': split.type.value,
                'amount': split.cost_per_slot,
                'paid_at': participant.paid_at,
                'payment_reference': participant.payment_reference,
                'status': split.status.value,
            })

        payments.sort(key=lambda p: p['paid_at'], reverse=True)
        return payments

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_split(
        self,
        *,
        organizer_id: str,
        title: str,
        type: str,
        total_cost: int,
        slots: int,
        description: str = '',
        location: str = '',
        event_date: Optional[date] = None,
        deadline: Optional[date] = None,
        vendor_name: Optional[str] = None,
        vendor_details: Optional[str] = None,
    ) -> Split:
        """
        Create a split with the organizer in the first slot.

        Raises:
            ValidationError: If the input violates a creation rule.
        """
        split = Split.create(
            split_id=str(uuid.uuid4()),
            organizer_id=organizer_id,
            title=title,
            type=type,
            total_cost=total_cost,
            slots=slots,
            now=self._clock(),
            description=description,
            location=location,
            event_date=event_date,
            deadline=deadline,
            vendor_name=vendor_name,
            vendor_details=vendor_details,
        )
        stored = self._store.add(split)
        logger.info(
            "Split %s created by %s (%s slots at %s)",
            stored.id, organizer_id, stored.slots, stored.cost_per_slot
        )
        return stored

    def join_split(self, *, split_id: str, company_id: str) -> Split:
        """
        Raises:
            SplitNotFoundError, NotOpenError, AlreadyJoinedError,
            NoSlotsAvailableError, ConcurrentModificationError
        """
        split = self._mutate(split_id, lambda s: s.join(company_id, self._clock()))
        logger.info(
            "Company %s joined split %s (%s/%s, %s)",
            company_id, split_id, split.filled_slots, split.slots, split.status.value
        )
        return split

    def leave_split(self, *, split_id: str, company_id: str) -> Split:
        """
        Raises:
            SplitNotFoundError, OrganizerCannotLeaveError, NotParticipantError,
            SplitClosedError, AlreadyPaidError, ConcurrentModificationError
        """
        split = self._mutate(split_id, lambda s: s.leave(company_id, self._clock()))
        logger.info("Company %s left split %s", company_id, split_id)
        return split

    def cancel_split(self, *, split_id: str, requester_id: str) -> Split:
        """
        Raises:
            SplitNotFoundError, HasPaidParticipantsError, NotOrganizerError,
            NotOpenError, ConcurrentModificationError
        """
        split = self._mutate(split_id, lambda s: s.cancel(requester_id, self._clock()))
        logger.info("Split %s cancelled by %s", split_id, requester_id)
        return split

    def apply_payment(self, *, split_id: str, company_id: str, payment_reference: str) -> Split:
        """
        Record a confirmed payment. Only the settlement coordinator calls this.

        Raises:
            SplitNotFoundError, NotParticipantError, OrganizerNotPayableError,
            AlreadyPaidError, NotFullError, ConcurrentModificationError
        """
        split = self._mutate(
            split_id,
            lambda s: s.apply_payment(company_id, payment_reference, self._clock())
        )
        logger.info(
            "Payment %s applied for %s on split %s (status %s)",
            payment_reference, company_id, split_id, split.status.value
        )
        return split

    def delete_split(self, *, split_id: str, requester_id: str) -> None:
        """
        Delete a split outright, in any state (organizer only).

        Raises:
            SplitNotFoundError: If the split doesn't exist.
            NotOrganizerError: If the requester is not the organizer.
            ConcurrentModificationError: If writes keep conflicting.
        """
        for attempt in range(self._max_attempts):
            split = self.get_split(split_id=split_id)
            split.ensure_can_delete(requester_id)
            if self._store.delete_if_unchanged(split_id, split.version):
                logger.info("Split %s deleted by %s", split_id, requester_id)
                return
            logger.debug("Version conflict deleting split %s (attempt %s)", split_id, attempt + 1)

        raise ConcurrentModificationError(
            f"Split {split_id} kept changing after {self._max_attempts} attempts"
        )

    def _mutate(self, split_id: str, operation: Callable[[Split], Split]) -> Split:
        """Apply operation with compare-and-swap, retrying on version conflicts."""
        for attempt in range(self._max_attempts):
            current = self.get_split(split_id=split_id)
            updated = operation(current)
            if updated is current:
                return current

            stored = self._store.put_if_unchanged(split_id, current.version, updated)
            if stored is not None:
                return stored
            logger.debug("Version conflict on split %s (attempt %s)", split_id, attempt + 1)

        logger.warning("Giving up on split %s after %s conflicting writes", split_id, self._max_attempts)
        raise ConcurrentModificationError(
            f"Split {split_id} kept changing after {self._max_attempts} attempts"
        )


def build_split_service() -> SplitService:
    """Compose the split service used by the API."""
    return SplitService(
        DjangoSplitStore(),
        max_attempts=getattr(settings, 'SPLIT_MAX_WRITE_ATTEMPTS', DEFAULT_MAX_ATTEMPTS),
    )
