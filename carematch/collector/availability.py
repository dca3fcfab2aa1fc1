"""
Availability Computation

Pure functions turning schedule blocks and bookings into an
AvailabilitySummary. No I/O.

- Only "available" blocks count.
- Block time already in the past (relative to now) is clipped.
- Booked time is subtracted once, even when bookings overlap each other.
- Slots are whole nominal-length chunks of free time per block.
- Window statistics stop at window_end; the next free instant is searched
  over every block passed in, so callers can look further ahead.

Version: data_collector_v1
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import AvailabilitySummary, BookingRow, ScheduleBlockRow

NOMINAL_SLOT_MINUTES = 60
AVAILABLE_BLOCK_TYPE = "available"
BOOKING_STATUSES = ("draft", "confirmed")

Interval = Tuple[datetime, datetime]


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes from the store are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    ordered = sorted((s, e) for s, e in intervals if e > s)
    merged: List[Interval] = []
    for start, end in ordered:
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def booked_intervals(bookings: Iterable[BookingRow]) -> List[Interval]:
    intervals = []
    for booking in bookings:
        if booking.status not in BOOKING_STATUSES:
            continue
        start = as_utc(booking.start_time)
        intervals.append((start, start + timedelta(minutes=booking.duration_minutes)))
    return merge_intervals(intervals)


def free_minutes(start: datetime, end: datetime, booked: Sequence[Interval]) -> float:
    """Minutes of [start, end) not covered by the merged booked intervals."""
    if end <= start:
        return 0.0
    total = (end - start).total_seconds()
    for b_start, b_end in booked:
        if b_start >= end:
            break
        overlap_start = max(start, b_start)
        overlap_end = min(end, b_end)
        if overlap_end > overlap_start:
            total -= (overlap_end - overlap_start).total_seconds()
    return max(0.0, total / 60.0)


def first_free_instant(start: datetime, end: datetime, booked: Sequence[Interval]) -> Optional[datetime]:
    cursor = start
    for b_start, b_end in booked:
        if b_start > cursor:
            break
        if b_end > cursor:
            cursor = b_end
    if cursor < end:
        return cursor
    return None


def compute_availability(
    blocks: Iterable[ScheduleBlockRow],
    bookings: Iterable[BookingRow],
    now: datetime,
    window_end: datetime,
    slot_minutes: int = NOMINAL_SLOT_MINUTES,
) -> AvailabilitySummary:
    """
    Summarise one professional's availability.

    Args:
        blocks: schedule blocks for the professional (any type; non-available
                blocks are ignored)
        bookings: bookings for the professional
        now: reference instant; earlier block time is ignored
        window_end: end of the scoring window
        slot_minutes: nominal slot length used for the slot count

    Returns:
        AvailabilitySummary with slot count and hours inside the window, and
        the earliest unbooked instant across all given blocks.
    """
    now = as_utc(now)
    window_end = as_utc(window_end)
    booked = booked_intervals(bookings)

    total_minutes = 0.0
    slots = 0
    next_slot: Optional[datetime] = None

    for block in blocks:
        if block.type != AVAILABLE_BLOCK_TYPE:
            continue
        block_start = as_utc(block.start_time)
        block_end = as_utc(block.end_time)
        if block_end <= now:
            continue
        effective_start = max(block_start, now)

        in_window_end = min(block_end, window_end)
        if effective_start < in_window_end:
            minutes = free_minutes(effective_start, in_window_end, booked)
            total_minutes += minutes
            slots += int(minutes // slot_minutes)

        free_at = first_free_instant(effective_start, block_end, booked)
        if free_at is not None and (next_slot is None or free_at < next_slot):
            next_slot = free_at

    return AvailabilitySummary(
        slots_in_window=slots,
        hours_available_in_window=round(total_minutes / 60.0, 1),
        next_slot_datetime=next_slot,
    )
