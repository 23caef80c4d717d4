"""
Outbound notification fan-out after a committed order transition.

Planning is pure: given the previous status and the updated order, decide
who hears about it. Delivery goes through a NotificationSink supplied by the
transport layer. Sending is best-effort: the action already committed, so a
failed send is logged and never retried or propagated.

Private channels are derived from the participant id: channel id ==
participant id.
"""
import logging
from dataclasses import dataclass
from typing import Protocol

from domain.enums import Status
from domain.order import Order
from services.store import OrderStore

logger = logging.getLogger(__name__)


def private_channel_for(participant_id: int) -> int:
    return participant_id


@dataclass(frozen=True)
class Notification:
    channel_id: int
    order: Order
    text: str
    # Render buttons for this participant's permitted actions; None means public actions
    viewer_id: int | None = None


class NotificationSink(Protocol):
    async def send(self, notification: Notification) -> int | None:
        """Deliver a notification; return the message id if it can be edited later."""
        ...

    async def retract(self, channel_id: int, message_id: int) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: writes notifications to the log and keeps no message ids."""

    async def send(self, notification: Notification) -> int | None:
        logger.info(
            f"notify channel={notification.channel_id} order={notification.order.id}: {notification.text}"
        )
        return None

    async def retract(self, channel_id: int, message_id: int) -> None:
        logger.info(f"retract channel={channel_id} message={message_id}")


def _assignee_name(order: Order) -> str:
    if order.assigned is None:
        return "someone"
    if order.assigned.assignee is not None:
        return order.assigned.assignee.display_name
    return f"user {order.assigned.assignee_id}"


def plan_notifications(
    prev_status: Status,
    order: Order,
    actor_id: int,
    venue_id: int,
) -> list[Notification]:
    """Who should hear about `order` moving out of `prev_status`."""
    status = order.status
    if status == prev_status:
        return []

    owner_channel = private_channel_for(order.customer.id)
    actor_channel = private_channel_for(actor_id)

    if status is Status.UNPUBLISHED:
        return [Notification(
            actor_channel, order,
            "The order is unpublished. Now it's not shown to anybody.",
            viewer_id=actor_id,
        )]

    if status is Status.PUBLISHED:
        if prev_status is Status.ASSIGNED:
            text = "The order is available again"
        else:
            text = "New order is published"
        return [Notification(venue_id, order, text)]

    if status is Status.ASSIGNED:
        assignee = _assignee_name(order)
        return [
            Notification(venue_id, order, f"Order is taken by {assignee}"),
            Notification(
                owner_channel, order,
                f"Congrats! {assignee} has agreed to deliver your order! Feel free to send them a message.",
                viewer_id=order.customer.id,
            ),
            Notification(actor_channel, order, f"Order is assigned to {assignee}", viewer_id=actor_id),
        ]

    if status is Status.MARKED_AS_DELIVERED:
        return [
            Notification(
                actor_channel, order,
                "Order is marked as delivered. It will be closed after the publisher "
                "confirms they've received it.",
                viewer_id=actor_id,
            ),
            Notification(
                owner_channel, order,
                f"{_assignee_name(order)} marked order as delivered. Please confirm it.",
                viewer_id=order.customer.id,
            ),
        ]

    # DELIVERY_CONFIRMED
    notifications = []
    if order.assignee_id is not None:
        notifications.append(Notification(
            private_channel_for(order.assignee_id), order,
            "Order delivery is confirmed! Thank you!",
            viewer_id=order.assignee_id,
        ))
    notifications.append(Notification(
        owner_channel, order, "Order delivery is confirmed!", viewer_id=order.customer.id,
    ))
    return notifications


async def dispatch(store: OrderStore, sink: NotificationSink, notifications: list[Notification]) -> int:
    """Send every notification; returns how many were sent successfully."""
    sent = 0
    for notification in notifications:
        try:
            message_id = await sink.send(notification)
        except Exception as e:
            logger.warning(
                f"Notification to channel {notification.channel_id} "
                f"for order {notification.order.id} failed: {e}"
            )
            continue
        sent += 1
        if message_id is None or notification.order.id is None:
            continue
        try:
            await store.record_notification_location(notification.order.id, notification.channel_id, message_id)
        except Exception as e:
            logger.warning(f"Could not record message {message_id} for order {notification.order.id}: {e}")
    return sent


async def retract_all(sink: NotificationSink, locations: list[tuple[int, int]]) -> None:
    """Remove every message that displayed a now-deleted order."""
    for channel_id, message_id in locations:
        try:
            await sink.retract(channel_id, message_id)
        except Exception as e:
            logger.warning(f"Could not retract message {message_id} in channel {channel_id}: {e}")
