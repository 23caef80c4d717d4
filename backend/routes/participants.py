"""
Participant endpoints — profiles, memberships and venue resolution.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from deps import get_store
from domain.errors import ParticipantNotFoundError
from domain.responses import success_response
from models import ParticipantProfile, ParticipantResponse, VenueResponse
from services.store import OrderStore
from services.venue_resolution import resolve_venue

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/participants", tags=["participants"])


@router.put("/{participant_id}")
async def upsert_participant(
    participant_id: int,
    request: ParticipantProfile,
    store: OrderStore = Depends(get_store),
):
    participant = request.to_domain(participant_id)
    await store.update_user(participant)
    return success_response(
        data=ParticipantResponse.from_participant(participant).model_dump(by_alias=True)
    )


@router.get("/{participant_id}")
async def get_participant(participant_id: int, store: OrderStore = Depends(get_store)):
    participant = await store.get_user(participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)
    return success_response(
        data=ParticipantResponse.from_participant(participant).model_dump(by_alias=True)
    )


@router.get("/{participant_id}/venues")
async def list_participant_venues(participant_id: int, store: OrderStore = Depends(get_store)):
    venues = await store.venues_of(participant_id)
    return success_response(
        data=[
            VenueResponse(id=venue_id, title=title).model_dump(by_alias=True)
            for venue_id, title in sorted(venues)
        ]
    )


@router.get("/{participant_id}/venue")
async def resolve_participant_venue(
    participant_id: int,
    venue_id: Optional[int] = Query(None, description="Venue the interaction happened in, if any"),
    store: OrderStore = Depends(get_store),
):
    """Which venue an interaction by this participant concerns."""
    resolved = await resolve_venue(store, participant_id, venue_id)
    return success_response(data={"venueId": resolved, "direct": venue_id is not None})
