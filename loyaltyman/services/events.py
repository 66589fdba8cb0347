"""Special event service — multiplier promotions."""

import logging
from datetime import datetime

from loyaltyman import multipliers
from loyaltyman.conf import current_time
from loyaltyman.exceptions import NotFound, ValidationFailure
from loyaltyman.models import SpecialEvent

logger = logging.getLogger(__name__)


class EventService:
    """Administration and lookup of special events."""

    @classmethod
    def create(
        cls,
        name: str,
        multiplier: int,
        start_at: datetime,
        end_at: datetime,
        description: str = "",
    ) -> SpecialEvent:
        """
        Create an active special event.

        Args:
            name: Event name
            multiplier: Points multiplier (>= 1)
            start_at: Window start (inclusive)
            end_at: Window end (inclusive)
            description: Event description

        Raises:
            ValidationFailure: If multiplier < 1 or end_at < start_at
        """
        if isinstance(multiplier, bool) or not isinstance(multiplier, int) or multiplier < 1:
            raise ValidationFailure("INVALID_MULTIPLIER", multiplier=multiplier)
        if end_at < start_at:
            raise ValidationFailure("INVALID_EVENT_WINDOW", start_at=start_at, end_at=end_at)

        event = SpecialEvent.objects.create(
            name=name,
            description=description,
            multiplier=multiplier,
            start_at=start_at,
            end_at=end_at,
            is_active=True,
        )
        logger.info("Special event %s created (x%s)", event.pk, multiplier)
        return event

    @classmethod
    def get(cls, event_id: int) -> SpecialEvent:
        try:
            return SpecialEvent.objects.get(pk=event_id)
        except SpecialEvent.DoesNotExist:
            raise NotFound("EVENT_NOT_FOUND", event_id=event_id)

    @classmethod
    def set_active(cls, event_id: int, active: bool) -> SpecialEvent:
        """Toggle an event on or off."""
        event = cls.get(event_id)
        event.is_active = active
        event.save(update_fields=["is_active"])
        return event

    @classmethod
    def list_active(cls) -> list[SpecialEvent]:
        """Active events (any window), latest start first."""
        return list(SpecialEvent.objects.active())

    @classmethod
    def running(cls, now: datetime | None = None) -> list[SpecialEvent]:
        """Active events whose window contains now."""
        return list(SpecialEvent.objects.running_at(now or current_time()))

    @classmethod
    def current_multiplier(cls, now: datetime | None = None) -> int:
        now = now or current_time()
        return multipliers.resolve(now, cls.running(now))
