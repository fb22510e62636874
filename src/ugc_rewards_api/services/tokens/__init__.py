"""Invitation and upload token handling."""

from .invitation_tokens import InvitationTokenCodec, ParsedInvitationToken
from .upload_tokens import TOKEN_PREFIX, UploadTokenInvalidError, UploadTokenService, looks_like_upload_token

__all__ = [
    "InvitationTokenCodec",
    "ParsedInvitationToken",
    "TOKEN_PREFIX",
    "UploadTokenInvalidError",
    "UploadTokenService",
    "looks_like_upload_token",
]
