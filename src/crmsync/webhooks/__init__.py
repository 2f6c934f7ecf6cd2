"""Inbound webhook handlers."""

from .pbx import (
    CallEvent,
    CallEventHandler,
    CallEventError,
    InvalidCallEventError,
    LeadNotFoundError,
    normalize_phone,
    phone_suffix,
    transition
)

__all__ = [
    "CallEvent",
    "CallEventHandler",
    "CallEventError",
    "InvalidCallEventError",
    "LeadNotFoundError",
    "normalize_phone",
    "phone_suffix",
    "transition"
]
