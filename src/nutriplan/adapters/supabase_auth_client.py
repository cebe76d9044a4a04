"""Supabase Auth lookup for bearer tokens."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from supabase import AuthError, Client

_logger = logging.getLogger(__name__)


class AuthClient(Protocol):
    """Interface for resolving access tokens to user ids."""

    def current_user_id(self, access_token: str) -> UUID | None:
        """Return the user id for a valid token, or None."""


@dataclass
class SupabaseAuthClient(AuthClient):
    """Supabase Auth implementation of token lookup."""

    client: Client

    def current_user_id(self, access_token: str) -> UUID | None:
        """Validate an access token with Supabase Auth."""
        if not access_token:
            return None
        try:
            response = self.client.auth.get_user(access_token)
        except AuthError as exc:
            _logger.info("Rejected access token: %s", exc.message)
            return None
        if response is None or response.user is None:
            return None
        return UUID(str(response.user.id))
