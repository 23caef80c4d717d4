"""
Venue endpoints — metadata and membership.
"""

import logging

from fastapi import APIRouter, Depends

from deps import get_store
from domain.responses import success_response
from models import AddMembersRequest, VenueUpdateRequest
from services.store import OrderStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/venues", tags=["venues"])


@router.put("/{venue_id}")
async def upsert_venue(
    venue_id: int,
    request: VenueUpdateRequest,
    store: OrderStore = Depends(get_store),
):
    await store.update_venue(venue_id, request.title)
    return success_response(data={"id": venue_id, "title": request.title})


@router.post("/{venue_id}/members")
async def add_venue_members(
    venue_id: int,
    request: AddMembersRequest,
    store: OrderStore = Depends(get_store),
):
    await store.add_members(venue_id, request.participant_ids)
    return success_response(data={"venueId": venue_id, "added": request.participant_ids})


@router.delete("/{venue_id}/members/{participant_id}")
async def remove_venue_member(
    venue_id: int,
    participant_id: int,
    store: OrderStore = Depends(get_store),
):
    await store.remove_member(venue_id, participant_id)
    return success_response(data={"venueId": venue_id, "removed": participant_id})
