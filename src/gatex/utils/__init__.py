"""Utility modules for the gateway."""

from .cancellation import CancellationToken, cancel_after
from .tokens import estimate_message_tokens, estimate_tokens

__all__ = [
    "CancellationToken",
    "cancel_after",
    "estimate_tokens",
    "estimate_message_tokens",
]
