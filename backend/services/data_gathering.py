"""
Data gathering — keep participants, venues and memberships current from
every observed inbound interaction.

Nothing here is authoritative about orders; it only feeds the membership
index that venue resolution relies on.
"""
import logging
from typing import Iterable

from domain.order import Participant
from services.store import OrderStore

logger = logging.getLogger(__name__)


async def observe_interaction(
    store: OrderStore,
    sender: Participant | None,
    venue_id: int | None = None,
    venue_title: str | None = None,
    joined: Iterable[Participant] = (),
    left: Participant | None = None,
) -> None:
    """
    Record what an inbound interaction tells us.

    - the sender's profile (last write wins)
    - the venue it happened in, with the sender as a member
    - members who joined or left that venue
    """
    if sender is not None:
        await store.update_user(sender)

    if venue_id is None:
        # private interaction: nothing to learn about venues
        return

    await store.update_venue(venue_id, venue_title)

    joined = list(joined)
    for participant in joined:
        await store.update_user(participant)

    new_members = [p.id for p in joined]
    if sender is not None and (left is None or left.id != sender.id):
        new_members.append(sender.id)
    if new_members:
        await store.add_members(venue_id, new_members)

    if left is not None:
        await store.update_user(left)
        await store.remove_member(venue_id, left.id)
        logger.info(f"Participant {left.id} left venue {venue_id}")
