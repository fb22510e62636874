"""Invitation tracking and token redemption."""

from .tracker import (
    InvitationAlreadySentError,
    InvitationError,
    InvitationTokenInvalidError,
    InvitationTracker,
    token_digest,
)

__all__ = [
    "InvitationAlreadySentError",
    "InvitationError",
    "InvitationTokenInvalidError",
    "InvitationTracker",
    "token_digest",
]
