"""
Inbound interaction feed — the transport reports every update it sees here.
"""

import logging

from fastapi import APIRouter, Depends

from deps import get_store
from domain.responses import success_response
from models import InteractionEvent
from services.data_gathering import observe_interaction
from services.store import OrderStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["events"])


@router.post("/events", status_code=202)
async def observe_event(event: InteractionEvent, store: OrderStore = Depends(get_store)):
    await observe_interaction(
        store,
        sender=event.sender.to_participant() if event.sender else None,
        venue_id=event.venue_id,
        venue_title=event.venue_title,
        joined=[p.to_participant() for p in event.joined],
        left=event.left.to_participant() if event.left else None,
    )
    return success_response(data={"observed": True, "venueId": event.venue_id})
