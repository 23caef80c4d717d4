"""
Venue resolution — which single venue an interaction concerns.

An interaction that happened inside a venue names it directly and always
wins. A private interaction falls back to the participant's memberships.
"""
import logging

from services.store import OrderStore

logger = logging.getLogger(__name__)


async def resolve_venue(
    store: OrderStore,
    participant_id: int,
    direct_venue_id: int | None = None,
) -> int:
    """
    Return the venue id for this interaction.

    Raises NotInAnyVenueError / MultipleVenuesError from the store's
    membership index, or StoreError if the store cannot be queried.
    """
    if direct_venue_id is not None:
        return direct_venue_id

    venue_id = await store.venue_for(participant_id)
    logger.debug(f"Resolved participant {participant_id} to venue {venue_id}")
    return venue_id
