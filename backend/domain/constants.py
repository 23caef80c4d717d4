"""
Domain constants used across services/routers.
"""

# Action tokens travel through opaque UI callback data as "<prefix> <kind> <order id>"
ACTION_TOKEN_PREFIX = "oa"

# Order ids are unsigned 64-bit counter values
MAX_ORDER_ID = 2**64 - 1

# Opaque message shown to end users for technical failures
GENERIC_FAILURE_MESSAGE = "Something went wrong, please try again"
