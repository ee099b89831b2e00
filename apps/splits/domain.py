"""
Split aggregate.

Pure domain logic with no I/O: a ``Split`` is an immutable value and every
operation returns a new ``Split`` or raises one of the errors in
``apps.splits.exceptions``. Persistence and concurrency control live in
``stores.py`` and ``services.py``.

Invariants enforced here:
    - filled_slots is always len(participants) (derived, never stored)
    - no duplicate company in participants
    - the organizer is always a participant and never leaves
    - status is FULL exactly when every slot is taken (unless terminal)
    - paid participants are never removed
    - cost_per_slot is fixed at creation
    - CANCELLED and COMPLETED are terminal
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from .exceptions import (
    AlreadyJoinedError,
    AlreadyPaidError,
    HasPaidParticipantsError,
    NoSlotsAvailableError,
    NotFullError,
    NotOpenError,
    NotOrganizerError,
    NotParticipantError,
    OrganizerCannotLeaveError,
    OrganizerNotPayableError,
    SplitClosedError,
    ValidationError,
)

MIN_SLOTS = 2


class SplitType(str, Enum):
    CONTENT = 'content'
    HOUSING = 'housing'
    POPUP = 'popup'
    OTHER = 'other'


class SplitStatus(str, Enum):
    OPEN = 'open'
    FULL = 'full'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


TERMINAL_STATUSES = frozenset({SplitStatus.COMPLETED, SplitStatus.CANCELLED})


@dataclass(frozen=True)
class Participant:
    """A company holding one slot of a split."""

    company_id: str
    joined_at: datetime
    paid: bool = False
    paid_at: Optional[datetime] = None
    payment_reference: Optional[str] = None


@dataclass(frozen=True)
class Split:
    """
    A shared cost divided into a fixed number of slots.

    ``version`` is owned by the store and bumped on every successful write;
    domain operations carry it through unchanged.
    """

    id: str
    title: str
    type: SplitType
    total_cost: int
    slots: int
    cost_per_slot: int
    organizer_id: str
    participants: Tuple[Participant, ...]
    status: SplitStatus
    created_at: datetime
    updated_at: datetime
    description: str = ''
    location: str = ''
    event_date: Optional[date] = None
    deadline: Optional[date] = None
    vendor_name: Optional[str] = None
    vendor_details: Optional[str] = None
    version: int = field(default=0, compare=False)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        *,
        split_id: str,
        organizer_id: str,
        title: str,
        type: str,
        total_cost: int,
        slots: int,
        now: datetime,
        description: str = '',
        location: str = '',
        event_date: Optional[date] = None,
        deadline: Optional[date] = None,
        vendor_name: Optional[str] = None,
        vendor_details: Optional[str] = None,
    ) -> 'Split':
        """
        Create an open split with the organizer occupying the first slot.

        Raises:
            ValidationError: If any precondition on the input is violated.
        """
        if not organizer_id:
            raise ValidationError('organizer_id is required')
        if not title or not title.strip():
            raise ValidationError('title is required')
        try:
            split_type = SplitType(type)
        except ValueError:
            raise ValidationError('Invalid split type')
        if not _is_int(total_cost) or total_cost <= 0:
            raise ValidationError('total_cost must be a positive integer')
        if not _is_int(slots) or slots < MIN_SLOTS:
            raise ValidationError(f'slots must be an integer of at least {MIN_SLOTS}')

        return cls(
            id=split_id,
            title=title.strip(),
            type=split_type,
            total_cost=total_cost,
            slots=slots,
            cost_per_slot=cost_per_slot(total_cost, slots),
            organizer_id=organizer_id,
            participants=(Participant(company_id=organizer_id, joined_at=now),),
            status=SplitStatus.OPEN,
            created_at=now,
            updated_at=now,
            description=description or '',
            location=location or '',
            event_date=event_date,
            deadline=deadline,
            vendor_name=vendor_name,
            vendor_details=vendor_details,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def filled_slots(self) -> int:
        return len(self.participants)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def payers(self) -> Tuple[Participant, ...]:
        """Participants expected to pay (everyone except the organizer)."""
        return tuple(p for p in self.participants if p.company_id != self.organizer_id)

    @property
    def has_paid_participants(self) -> bool:
        return any(p.paid for p in self.participants)

    @property
    def all_payers_paid(self) -> bool:
        payers = self.payers
        return bool(payers) and all(p.paid for p in payers)

    def participant(self, company_id: str) -> Optional[Participant]:
        for p in self.participants:
            if p.company_id == company_id:
                return p
        return None

    def has_participant(self, company_id: str) -> bool:
        return self.participant(company_id) is not None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def join(self, company_id: str, now: datetime) -> 'Split':
        """
        Add a company to the split; the split becomes FULL on the last slot.

        Raises:
            NotOpenError: If the split is cancelled or completed.
            AlreadyJoinedError: If the company already participates.
            NoSlotsAvailableError: If every slot is taken.
        """
        if self.is_terminal:
            raise NotOpenError()
        if self.has_participant(company_id):
            raise AlreadyJoinedError()
        if self.filled_slots >= self.slots:
            raise NoSlotsAvailableError()

        participants = self.participants + (Participant(company_id=company_id, joined_at=now),)
        status = SplitStatus.FULL if len(participants) == self.slots else SplitStatus.OPEN
        return replace(self, participants=participants, status=status, updated_at=now)

    def leave(self, company_id: str, now: datetime) -> 'Split':
        """
        Remove an unpaid, non-organizer participant.

        Leaving always reopens the split, even when it was full and other
        participants have already paid.

        Raises:
            OrganizerCannotLeaveError: If the company is the organizer.
            NotParticipantError: If the company is not a participant.
            SplitClosedError: If the split is cancelled or completed.
            AlreadyPaidError: If the participant has already paid.
        """
        if company_id == self.organizer_id:
            raise OrganizerCannotLeaveError()
        participant = self.participant(company_id)
        if participant is None:
            raise NotParticipantError()
        if self.is_terminal:
            raise SplitClosedError(f'Split is {self.status.value}')
        if participant.paid:
            raise AlreadyPaidError('Cannot leave after payment. Contact organizer for refund.')

        participants = tuple(p for p in self.participants if p.company_id != company_id)
        return replace(self, participants=participants, status=SplitStatus.OPEN, updated_at=now)

    def cancel(self, requester_id: str, now: datetime) -> 'Split':
        """
        Cancel an open split with no payments (organizer only).

        Raises:
            HasPaidParticipantsError: If anyone has paid, whoever asks.
            NotOrganizerError: If the requester is not the organizer.
            NotOpenError: If the split is not open.
        """
        if self.has_paid_participants:
            raise HasPaidParticipantsError()
        if requester_id != self.organizer_id:
            raise NotOrganizerError('Only organizer can cancel')
        if self.status != SplitStatus.OPEN:
            raise NotOpenError(f'Only open splits can be cancelled (split is {self.status.value})')

        return replace(self, status=SplitStatus.CANCELLED, updated_at=now)

    def ensure_can_delete(self, requester_id: str) -> None:
        """
        Raises:
            NotOrganizerError: If the requester is not the organizer.
        """
        if requester_id != self.organizer_id:
            raise NotOrganizerError('Only organizer can delete')

    def apply_payment(self, company_id: str, payment_reference: str, now: datetime) -> 'Split':
        """
        Mark a participant as paid; the split completes once every payer paid.

        Re-applying the reference that was already recorded for the
        participant returns the split unchanged.

        Raises:
            NotParticipantError: If the company is not a participant.
            OrganizerNotPayableError: If the company is the organizer.
            AlreadyPaidError: If the participant paid with another reference.
            NotFullError: If the split is not full.
        """
        participant = self.participant(company_id)
        if participant is None:
            raise NotParticipantError()
        if company_id == self.organizer_id:
            raise OrganizerNotPayableError()
        if participant.paid:
            if participant.payment_reference == payment_reference:
                return self
            raise AlreadyPaidError()
        if self.status != SplitStatus.FULL:
            raise NotFullError(f'Split is {self.status.value}, payments need a full split')

        paid = replace(participant, paid=True, paid_at=now, payment_reference=payment_reference)
        participants = tuple(paid if p.company_id == company_id else p for p in self.participants)
        updated = replace(self, participants=participants, updated_at=now)
        if updated.all_payers_paid:
            updated = replace(updated, status=SplitStatus.COMPLETED)
        return updated


def cost_per_slot(total_cost: int, slots: int) -> int:
    """Ceiling of total_cost / slots, in integer arithmetic."""
    return -(-total_cost // slots)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
