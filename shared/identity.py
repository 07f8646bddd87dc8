"""
Identity service clients.

The API delegates bearer-token verification to an external identity
service (a hosted auth platform speaking the GoTrue REST dialect). For
self-hosted installs without one, a static token list can stand in.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import requests

from shared.constants import DEFAULT_NETWORK_TIMEOUT
from shared.errors import Unauthorized
from shared.models import AuthUser, TokenPair

logger = logging.getLogger(__name__)


def bearer_token(header: Optional[str]) -> str:
    """
    Extract the token from an `Authorization: Bearer <token>` header.

    Raises:
        Unauthorized: If the header is missing or malformed
    """
    if not header:
        raise Unauthorized("Missing Authorization header")
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise Unauthorized("Malformed Authorization header")
    return parts[1]


def refresh_access_token(auth_url: str, anon_key: str, refresh_token: str,
                         timeout: int = DEFAULT_NETWORK_TIMEOUT) -> TokenPair:
    """
    Exchange a refresh token for a new token pair.

    Pure with respect to local state: nothing is cached or persisted, the
    caller decides what to do with the returned pair.

    Args:
        auth_url: Identity service base URL
        anon_key: Public API key sent as `apikey`
        refresh_token: Refresh token from the previous sign-in
        timeout: Request timeout in seconds

    Returns:
        New TokenPair. The old refresh token is kept if the service did not
        rotate it.

    Raises:
        Unauthorized: If the service rejects the token or cannot be reached
    """
    if not refresh_token:
        raise Unauthorized("Refresh token not provided")
    try:
        response = requests.post(
            f"{auth_url}/auth/v1/token",
            params={"grant_type": "refresh_token"},
            headers={"apikey": anon_key, "Content-Type": "application/json"},
            json={"refresh_token": refresh_token},
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error("Token refresh request failed: %s", e)
        raise Unauthorized("Could not reach identity service")

    if response.status_code != 200:
        logger.warning("Token refresh rejected with status %s", response.status_code)
        raise Unauthorized("Could not refresh token")

    data = response.json()
    if not data.get("access_token"):
        raise Unauthorized("Identity service returned no access token")
    return TokenPair(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token") or refresh_token,
    )


class IdentityService(ABC):
    """Verifies bearer credentials."""

    @abstractmethod
    def verify(self, token: str) -> AuthUser:
        """
        Resolve a bearer token to a user.

        Raises:
            Unauthorized: If the token is invalid or expired
        """
        pass

    def refresh(self, refresh_token: str) -> TokenPair:
        raise Unauthorized("Token refresh is not supported by this identity service")


class HostedIdentityService(IdentityService):
    """Identity service backed by the hosted platform's auth REST API."""

    def __init__(self, auth_url: str, anon_key: str, timeout: int = DEFAULT_NETWORK_TIMEOUT):
        self.auth_url = auth_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout

    def verify(self, token: str) -> AuthUser:
        try:
            response = requests.get(
                f"{self.auth_url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Identity service unreachable: %s", e)
            raise Unauthorized("Could not reach identity service")

        if response.status_code != 200:
            logger.warning("Token rejected by identity service (status %s)", response.status_code)
            raise Unauthorized("Invalid token")

        user = AuthUser.from_dict(response.json())
        if not user.id:
            raise Unauthorized("User not found")
        return user

    def refresh(self, refresh_token: str) -> TokenPair:
        return refresh_access_token(self.auth_url, self.anon_key, refresh_token, self.timeout)

    def sign_in(self, email: str, password: str) -> TokenPair:
        """
        Sign in with email and password.

        Returns:
            TokenPair for the new session

        Raises:
            Unauthorized: On wrong credentials or network failure
        """
        try:
            response = requests.post(
                f"{self.auth_url}/auth/v1/token",
                params={"grant_type": "password"},
                headers={"apikey": self.anon_key, "Content-Type": "application/json"},
                json={"email": email, "password": password},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Sign-in request failed: %s", e)
            raise Unauthorized("Could not reach identity service")

        if response.status_code != 200:
            raise Unauthorized("Invalid email or password")
        return TokenPair.from_dict(response.json())


class StaticTokenIdentityService(IdentityService):
    """Accepts a fixed set of admin tokens."""

    def __init__(self, tokens: Iterable[str]):
        self.tokens = {t for t in tokens if t}

    def verify(self, token: str) -> AuthUser:
        if token not in self.tokens:
            raise Unauthorized("Invalid token")
        return AuthUser(id="admin", email="admin@localhost")
