"""
Action tokens: "which order, which action" packed into opaque UI callback data.

Wire format is three space-separated fields: "<prefix> <action id> <order id>",
e.g. "oa publish 42". The actor is never part of the token; it comes from the
authenticated interaction.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from domain.constants import ACTION_TOKEN_PREFIX, MAX_ORDER_ID
from domain.enums import ActionKind

_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Action:
    """A requested transition on a specific order."""
    order_id: int
    kind: ActionKind

    @property
    def human_name(self) -> str:
        return self.kind.human_name

    def encode(self) -> str:
        return f"{ACTION_TOKEN_PREFIX} {self.kind.id} {self.order_id}"

    @classmethod
    def decode(cls, data: str) -> Action | None:
        """
        Parse a token produced by `encode`.

        Returns None for anything else (foreign prefix, unknown action id,
        malformed or overflowing order id, missing or extra fields): callback
        data from other sources must be ignored, not crash the handler.
        """
        fields = data.split(" ")
        if len(fields) != 3:
            return None

        prefix, action_id, raw_order_id = fields
        if prefix != ACTION_TOKEN_PREFIX:
            return None

        if not _DIGITS.fullmatch(raw_order_id):
            return None
        order_id = int(raw_order_id)
        if order_id > MAX_ORDER_ID:
            return None

        kind = ActionKind.from_id(action_id)
        if kind is None:
            return None
        return cls(order_id=order_id, kind=kind)
