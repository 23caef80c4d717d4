"""
Shared FastAPI dependencies.

The store and the notification sink are created once in the app lifespan and
live on app.state; routers import the accessors from here.
"""

from __future__ import annotations

from fastapi import Request

from services.notification_service import LoggingNotificationSink, NotificationSink
from services.store import OrderStore


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def get_notification_sink(request: Request) -> NotificationSink:
    sink = getattr(request.app.state, "notification_sink", None)
    if sink is None:
        sink = LoggingNotificationSink()
        request.app.state.notification_sink = sink
    return sink
