"""
Venue ("public chat"): the shared context where orders are published and claimed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from domain.order import Order

logger = logging.getLogger(__name__)


@dataclass
class Venue:
    id: int
    title: str
    # Insertion-ordered, deduplicated
    members: list[int] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)

    def add_member(self, participant_id: int) -> None:
        if participant_id not in self.members:
            logger.debug(f"Adding participant {participant_id} to venue {self.title!r}")
            self.members.append(participant_id)

    def remove_member(self, participant_id: int) -> None:
        if participant_id in self.members:
            self.members.remove(participant_id)

    def has_member(self, participant_id: int) -> bool:
        return participant_id in self.members

    def find_order(self, order_id: int) -> Order | None:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def remove_order(self, order_id: int) -> Order | None:
        for index, order in enumerate(self.orders):
            if order.id == order_id:
                return self.orders.pop(index)
        return None
