"""
Event existence lookup interface.
Booking validation depends on this instead of the event store.
"""

from abc import ABC, abstractmethod


class EventLookup(ABC):
    """
    Answers whether an event id refers to a stored event.

    Implementations:
    - MongoEventLookup: queries the `events` collection
    - test stubs backed by a set of ids
    """

    @abstractmethod
    async def exists(self, event_id: str) -> bool:
        """
        Args:
            event_id: Hex ObjectId of the event

        Returns:
            True if an event with this id is stored, False otherwise
            (including when the id is not a valid ObjectId)
        """
        pass
