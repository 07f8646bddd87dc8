"""
Admin-side session and API client.

The session is an explicit value handed to every request builder; nothing
reads tokens from ambient storage. Refreshing produces a new session.
"""

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

from shared.constants import DEFAULT_CONFIG_DIR, DEFAULT_NETWORK_TIMEOUT, DEFAULT_SERVER_URL, SESSION_FILENAME
from shared.crypto import CredentialManager
from shared.errors import CatalogError, Unauthorized
from shared.models import TokenPair

logger = logging.getLogger(__name__)


def default_session_path() -> Path:
    return Path(DEFAULT_CONFIG_DIR).expanduser() / SESSION_FILENAME


@dataclass(frozen=True)
class ClientSession:
    """
    Server location plus the tokens of the signed-in admin.

    Attributes:
        base_url: Catalog API root, e.g. http://localhost:5005
        tokens: Current token pair, None when signed out
        timeout: Request timeout in seconds
    """
    base_url: str = DEFAULT_SERVER_URL
    tokens: Optional[TokenPair] = None
    timeout: int = DEFAULT_NETWORK_TIMEOUT

    @property
    def is_authenticated(self) -> bool:
        return self.tokens is not None and bool(self.tokens.access_token)

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/api/{path.lstrip('/')}"

    def authorization_headers(self) -> Dict[str, str]:
        """
        Headers for an authenticated request.

        Raises:
            Unauthorized: If the session holds no access token
        """
        if not self.is_authenticated:
            raise Unauthorized("Not signed in", "Run the login command first")
        return {"Authorization": f"Bearer {self.tokens.access_token}"}

    def with_tokens(self, tokens: Optional[TokenPair]) -> 'ClientSession':
        return replace(self, tokens=tokens)

    def save(self, path: Optional[Path] = None) -> Path:
        """Write the session to disk with the tokens encrypted."""
        path = Path(path) if path else default_session_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        data: Dict[str, Any] = {"base_url": self.base_url, "timeout": self.timeout}
        if self.tokens:
            data["tokens"] = CredentialManager.encrypt_json(self.tokens.to_dict())
        path.write_text(json.dumps(data, indent=2))
        path.chmod(0o600)
        return path

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'ClientSession':
        """
        Read a saved session.

        Returns:
            The saved session, or a signed-out default session if none exists
            or its tokens cannot be decrypted on this machine
        """
        path = Path(path) if path else default_session_path()
        if not path.exists():
            return cls()

        data = json.loads(path.read_text())
        tokens = None
        if data.get("tokens"):
            payload = CredentialManager.decrypt_json(data["tokens"])
            if payload is None:
                logger.warning("Saved session could not be decrypted, sign in again")
            else:
                tokens = TokenPair.from_dict(payload)
        return cls(
            base_url=data.get("base_url", DEFAULT_SERVER_URL),
            tokens=tokens,
            timeout=int(data.get("timeout", DEFAULT_NETWORK_TIMEOUT)),
        )


def _error_message(response: requests.Response) -> str:
    try:
        return response.json().get("error") or response.reason
    except ValueError:
        return response.reason or f"HTTP {response.status_code}"


def check_response(response: requests.Response) -> Dict[str, Any]:
    """
    Decode a JSON response, mapping failures to catalog errors.

    Raises:
        Unauthorized: On 401
        CatalogError: On any other non-2xx status
    """
    if response.status_code == 401:
        raise Unauthorized(_error_message(response), "Session expired, sign in again")
    if not response.ok:
        error = CatalogError(_error_message(response))
        error.status_code = response.status_code
        raise error
    return response.json()


class CatalogClient:
    """Thin wrapper over the catalog HTTP API."""

    def __init__(self, session: ClientSession, http: Optional[requests.Session] = None):
        self.session = session
        self.http = http or requests.Session()

    def refresh(self) -> ClientSession:
        """
        Trade the refresh token for new tokens via the server.

        Returns:
            The refreshed session (also installed on this client)

        Raises:
            Unauthorized: If there is no refresh token or the server rejects it
        """
        if not self.session.tokens or not self.session.tokens.refresh_token:
            raise Unauthorized("No refresh token available", "Run the login command first")

        response = self.http.post(
            self.session.url("refresh-token"),
            json={"refreshToken": self.session.tokens.refresh_token},
            timeout=self.session.timeout,
        )
        data = check_response(response)
        pair = TokenPair(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or self.session.tokens.refresh_token,
        )
        self.session = self.session.with_tokens(pair)
        logger.info("Session refreshed")
        return self.session

    def upload_cd_zip(self, zip_path, title: str, artist: str, genre: str,
                      track_order: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """
        Upload a ZIP archive as a new CD.

        Args:
            zip_path: Archive on disk
            title: CD title
            artist: CD artist
            genre: CD genre
            track_order: Archive paths of the tracks in the desired order

        Returns:
            Decoded response: {"success", "cd", "warnings"}
        """
        form = {"title": title, "artist": artist, "genre": genre}
        if track_order:
            form["trackOrder"] = json.dumps(list(track_order))

        zip_path = Path(zip_path)
        with open(zip_path, "rb") as f:
            response = self.http.post(
                self.session.url("upload-cd-zip"),
                headers=self.session.authorization_headers(),
                data=form,
                files={"zipFile": (zip_path.name, f, "application/zip")},
                timeout=None,  # archive uploads are unbounded
            )
        return check_response(response)

    def list_cds(self) -> List[Dict[str, Any]]:
        response = self.http.get(self.session.url("cds"), timeout=self.session.timeout)
        return check_response(response)["cds"]
