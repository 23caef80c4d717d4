"""
Order endpoints — drafting, listings, buttons, actions and the
notification-location index.
"""

import logging

from fastapi import APIRouter, Depends, Query

from deps import get_notification_sink, get_store
from domain.enums import Status
from domain.errors import OrderNotFoundError, ParticipantNotFoundError
from domain.responses import success_response
from models import (
    ActionOption,
    ActionRequest,
    ActionResponse,
    NotificationLocation,
    OrderActionsResponse,
    OrderCreateRequest,
    OrderResponse,
)
from services import order_service
from services.data_gathering import observe_interaction
from services.notification_service import NotificationSink
from services.store import OrderStore

logger = logging.getLogger(__name__)
router = APIRouter(tags=["orders"])


def _orders_payload(orders) -> list[dict]:
    return [OrderResponse.from_order(o).model_dump(by_alias=True, mode="json") for o in orders]


@router.post("/venues/{venue_id}/orders", status_code=201)
async def create_order(
    venue_id: int,
    request: OrderCreateRequest,
    store: OrderStore = Depends(get_store),
):
    customer = await store.get_user(request.customer_id)
    if customer is None:
        raise ParticipantNotFoundError(request.customer_id)

    order = await order_service.create_order(
        store,
        venue_id,
        customer,
        name=request.name,
        description=request.description,
        price=request.price,
        delivery_reward=request.delivery_reward,
        urgency=request.urgency,
    )
    return success_response(data=OrderResponse.from_order(order).model_dump(by_alias=True, mode="json"))


@router.get("/venues/{venue_id}/orders")
async def list_orders_by_status(
    venue_id: int,
    status: Status = Query(Status.PUBLISHED),
    store: OrderStore = Depends(get_store),
):
    orders = await store.orders_by_status(venue_id, status)
    return success_response(data=_orders_payload(orders), meta={"total": len(orders)})


@router.get("/venues/{venue_id}/orders/submitted-by/{participant_id}")
async def list_orders_submitted_by(
    venue_id: int,
    participant_id: int,
    store: OrderStore = Depends(get_store),
):
    orders = await store.orders_submitted_by(venue_id, participant_id)
    return success_response(data=_orders_payload(orders), meta={"total": len(orders)})


@router.get("/venues/{venue_id}/orders/assigned-to/{participant_id}")
async def list_active_assignments(
    venue_id: int,
    participant_id: int,
    store: OrderStore = Depends(get_store),
):
    orders = await store.active_assignments_to(venue_id, participant_id)
    return success_response(data=_orders_payload(orders), meta={"total": len(orders)})


@router.get("/venues/{venue_id}/orders/{order_id}/actions")
async def list_permitted_actions(
    venue_id: int,
    order_id: int,
    participant_id: int = Query(..., description="Participant the buttons are rendered for"),
    store: OrderStore = Depends(get_store),
):
    """The buttons `participant_id` should see on this order right now."""
    order = await store.get_order(venue_id, order_id)
    if order is None:
        raise OrderNotFoundError(order_id)
    payload = OrderActionsResponse(
        order_id=order.id,
        participant_id=participant_id,
        role=order.role_of(participant_id).name.lower(),
        status=order.status,
        actions=[ActionOption.for_order(order, kind) for kind in order.permitted_actions(participant_id)],
    )
    return success_response(data=payload.model_dump(by_alias=True, mode="json"))


@router.post("/actions")
async def perform_action(
    request: ActionRequest,
    store: OrderStore = Depends(get_store),
    sink: NotificationSink = Depends(get_notification_sink),
):
    """Perform the action encoded in a pressed button's token."""
    actor = request.actor.to_participant()
    await observe_interaction(store, actor, venue_id=request.venue_id)

    action, prev_status, order = await order_service.perform_token_action(
        store, actor, request.token, request.venue_id, sink,
    )
    payload = ActionResponse(
        action=action.kind.id,
        action_name=action.human_name,
        order_id=action.order_id,
        previous_status=prev_status,
        status=order.status if order is not None else None,
        deleted=order is None,
        order=OrderResponse.from_order(order) if order is not None else None,
    )
    return success_response(data=payload.model_dump(by_alias=True, mode="json"))


@router.get("/orders/{order_id}/notifications")
async def list_notification_locations(order_id: int, store: OrderStore = Depends(get_store)):
    locations = await store.notification_locations(order_id)
    return success_response(
        data=[
            NotificationLocation(channel_id=channel_id, message_id=message_id).model_dump(by_alias=True)
            for channel_id, message_id in locations
        ]
    )


@router.post("/orders/{order_id}/notifications", status_code=201)
async def record_notification_location(
    order_id: int,
    request: NotificationLocation,
    store: OrderStore = Depends(get_store),
):
    await store.record_notification_location(order_id, request.channel_id, request.message_id)
    return success_response(data={"orderId": order_id, **request.model_dump(by_alias=True)})
