"""
Builds the countdown listing of events shown on the home page.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Dict, List, Mapping, Optional, Tuple

from eventlist.models.event import Event
from eventlist.services.occurrence_resolver import (
    CountdownParts, Occurrence, countdown_parts, resolve_next_occurrence
)

logger = logging.getLogger(__name__)


@dataclass
class EventCountdown:
    """An event together with its next occurrence."""
    event: Event
    occurrence: Occurrence
    parts: CountdownParts

    @property
    def days_until(self) -> int:
        return self.occurrence.days_until

    @property
    def next_date(self) -> datetime:
        return self.occurrence.next_date

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary (event fields plus countdown)."""
        data = self.event.to_dict()
        data['daysUntil'] = self.occurrence.days_until
        data['nextTargetDate'] = self.occurrence.next_date.isoformat()
        data['countdown'] = self.parts.to_dict()
        return data


@dataclass
class EventListing:
    """Dated events soonest first, plus events without a date."""
    dated: List[EventCountdown] = field(default_factory=list)
    dateless: List[Event] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.dated and not self.dateless

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary."""
        dateless = []
        for event in self.dateless:
            data = event.to_dict()
            data['daysUntil'] = None
            data['nextTargetDate'] = None
            dateless.append(data)

        return {
            'events': [countdown.to_dict() for countdown in self.dated],
            'eventsWithoutDate': dateless
        }


class EventListPresenter:
    """
    Resolves countdowns for a set of events.

    The resolver is only called for events that have a target date; results
    depend on `now` and are rebuilt on every request.
    """

    def __init__(self, fixed_dates: Optional[Mapping[str, Tuple[int, int]]] = None,
                 timezone: Optional[tzinfo] = None):
        """
        Args:
            fixed_dates: (month, day) table for the well-known event types
            timezone: Zone that stored dates are wall-clock times in;
                None means the server's local time, naive
        """
        self.fixed_dates = fixed_dates
        self.timezone = timezone

    def now(self) -> datetime:
        """Current instant in the presenter's zone."""
        return datetime.now(self.timezone)

    def countdown_for(self, event: Event, now: datetime) -> Optional[EventCountdown]:
        """Countdown for one event, or None when it has no target date."""
        if not event.has_countdown:
            return None

        occurrence = resolve_next_occurrence(event.event_type, event.target_date, now, self.fixed_dates)
        return EventCountdown(
            event=event,
            occurrence=occurrence,
            parts=countdown_parts(occurrence.next_date, now)
        )

    def present(self, events: List[Event], now: datetime) -> EventListing:
        """
        Split events into dated (sorted by days remaining) and dateless.

        Args:
            events: Events to present
            now: Current instant

        Returns:
            EventListing
        """
        listing = EventListing()

        for event in events:
            countdown = self.countdown_for(event, now)
            if countdown is None:
                listing.dateless.append(event)
            else:
                listing.dated.append(countdown)

        # Stable sort keeps storage order between events on the same day
        listing.dated.sort(key=lambda countdown: countdown.days_until)

        logger.debug(f"Presented {len(listing.dated)} dated and {len(listing.dateless)} dateless events")
        return listing
