"""Authorization for gmailbox.

Provides the Authorizer, which turns a stored OAuth token (or, failing that,
an installed-app consent flow) into Google API credentials for one mailbox.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .exceptions import AuthError

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/gmail.modify",
)

# Scope aliases for convenience
SCOPE_ALIASES = {
    "mail-read": "https://www.googleapis.com/auth/gmail.readonly",
    "mail-modify": "https://www.googleapis.com/auth/gmail.modify",
    "mail-labels": "https://www.googleapis.com/auth/gmail.labels",
    "mail-send": "https://www.googleapis.com/auth/gmail.send",
    "mail": "https://www.googleapis.com/auth/gmail.modify",
    "mail-full": "https://mail.google.com/",
}


def resolve_scope_alias(alias: str) -> str:
    """Resolve a scope alias to its full URL, or return the input if not an alias."""
    return SCOPE_ALIASES.get(alias, alias)


class Authorizer:
    """
    Produces authorization handles (google.oauth2 Credentials) for a mailbox.

    Valid credentials are cached on the instance and refreshed when they
    expire. When no usable token exists and `interactive` is set, the
    installed-app flow is run against `client_secret_file` and the resulting
    token is written to `token_path`.
    """

    def __init__(
        self,
        scopes: Iterable[str],
        token_path: Optional[Union[str, Path]] = None,
        client_secret_file: Optional[Union[str, Path]] = None,
        interactive: bool = False,
    ):
        self.scopes = [resolve_scope_alias(s) for s in scopes]
        self.token_path = Path(token_path) if token_path else None
        self.client_secret_file = Path(client_secret_file) if client_secret_file else None
        self.interactive = interactive
        self._creds = None
        self._lock: Optional[asyncio.Lock] = None

    @classmethod
    def from_config(cls, config, interactive: bool = False) -> "Authorizer":
        """Build an Authorizer from a MailboxConfig."""
        return cls(
            config.scopes,
            token_path=config.token_path,
            client_secret_file=config.client_secret_path,
            interactive=interactive,
        )

    async def authorize(self) -> Any:
        """
        Return valid credentials, loading or refreshing them if needed.

        Raises:
            AuthError: If no valid credentials can be obtained
        """
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._creds is not None and self._creds.valid:
                return self._creds
            try:
                self._creds = await asyncio.to_thread(self._load_credentials)
            except AuthError:
                raise
            except Exception as e:
                raise AuthError(f"Authorization failed: {e}") from e
            return self._creds

    def _load_credentials(self):
        from google.oauth2.credentials import Credentials
        from google.auth.transport.requests import Request

        creds = self._creds
        if creds is None and self.token_path and self.token_path.exists():
            logger.debug(f"Loading token from {self.token_path}")
            creds = Credentials.from_authorized_user_file(str(self.token_path), self.scopes)

        if creds is not None and creds.valid:
            return creds

        if creds is not None and creds.expired and creds.refresh_token:
            logger.debug("Token expired, refreshing")
            creds.refresh(Request())
            self._save(creds)
            return creds

        if not self.interactive:
            raise AuthError(
                f"No valid token at {self.token_path}. Run 'gmailbox authorize' first."
            )
        return self._run_consent_flow()

    def _run_consent_flow(self):
        from google_auth_oauthlib.flow import InstalledAppFlow

        if not self.client_secret_file or not self.client_secret_file.exists():
            raise AuthError(f"Client secrets file not found: {self.client_secret_file}")

        logger.info(f"Requesting OAuth token for scopes: {', '.join(self.scopes)}")
        flow = InstalledAppFlow.from_client_secrets_file(
            str(self.client_secret_file), self.scopes
        )
        creds = flow.run_local_server(port=0)
        logger.info("User authorization completed via browser.")
        self._save(creds)
        return creds

    def _save(self, creds):
        if not self.token_path:
            return
        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_path, "w") as token_file:
            token_file.write(creds.to_json())
        logger.debug(f"Token saved to {self.token_path}")
