"""
Order service: the use cases behind the chat commands and button presses.

Routes call these; they own validation of user input, venue resolution and
the notification fan-out. The store remains the only place state changes.
"""
import logging

from domain.action import Action
from domain.enums import ActionKind, Status, Urgency
from domain.errors import NotPermittedError, UnrecognizedActionError, ValidationError
from domain.order import Order, Participant
from services.notification_service import (
    NotificationSink,
    dispatch,
    plan_notifications,
    retract_all,
)
from services.store import OrderStore
from services.venue_resolution import resolve_venue

logger = logging.getLogger(__name__)


async def create_order(
    store: OrderStore,
    venue_id: int,
    customer: Participant,
    name: str,
    description: str = "",
    price: int = 0,
    delivery_reward: int = 0,
    urgency: Urgency = Urgency.WHENEVER,
) -> Order:
    """Validate and insert a new, unpublished order. Returns it with its id set."""
    name = name.strip()
    if not name:
        raise ValidationError("must not be empty", field="name")
    if price < 0:
        raise ValidationError("must not be negative", field="price")
    if delivery_reward < 0:
        raise ValidationError("must not be negative", field="delivery_reward")

    order = Order(
        name=name,
        customer=customer,
        description=description.strip(),
        price=price,
        delivery_reward=delivery_reward,
        urgency=urgency,
    )
    await store.add_order(venue_id, order)
    logger.info(f"Participant {customer.id} created order {order.id} in venue {venue_id}")
    return order


async def perform_token_action(
    store: OrderStore,
    actor: Participant,
    token: str,
    direct_venue_id: int | None,
    sink: NotificationSink,
) -> tuple[Action, Status, Order | None]:
    """
    Handle a pressed button: decode, resolve the venue, transition, notify.

    Returns (action, previous status, updated order or None when deleted).
    Notification failures are logged by the notification service and do not
    affect the result; the transition is already committed.
    """
    action = Action.decode(token)
    if action is None:
        logger.debug(f"Ignoring foreign callback data {token!r}")
        raise UnrecognizedActionError(token)

    venue_id = await resolve_venue(store, actor.id, direct_venue_id)

    locations = []
    if action.kind is ActionKind.DELETE:
        # read before the delete purges them
        locations = await store.notification_locations(action.order_id)

    try:
        prev_status, order = await store.perform_action(actor, venue_id, action)
    except NotPermittedError:
        logger.info(
            f"Participant {actor.id} may not {action.kind.id} order {action.order_id} in venue {venue_id}"
        )
        raise

    if order is None:
        await retract_all(sink, locations)
        logger.info(f"Participant {actor.id} deleted order {action.order_id}")
        return action, prev_status, None

    notifications = plan_notifications(prev_status, order, actor.id, venue_id)
    await dispatch(store, sink, notifications)
    logger.info(
        f"Participant {actor.id} performed {action.kind.id} on order {order.id}: "
        f"{prev_status.value} -> {order.status.value}"
    )
    return action, prev_status, order
