"""Credential acquisition for the remote member directory.

The directory accepts more than one kind of credential, and which one works
depends on how the site was provisioned. ``AuthenticationManager`` walks an
ordered list of strategy descriptors, probes each candidate credential
against "list members, limit 1", and keeps the first one that answers 200.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import requests

from ..config import Config
from ..logger import mask_secret
from ..models import AuthStrategy, Credential
from .http import CONNECT_TIMEOUT, ThreadLocalSessions

logger = logging.getLogger(__name__)

SITE_ID_HEADER = "wix-site-id"
MEMBERS_PATH = "/members/v1/members"
DEFAULT_KEY_TTL = timedelta(hours=24)
DEFAULT_OAUTH_TTL_SECONDS = 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class StrategyDescriptor:
    """One way of obtaining a credential.

    Attributes:
        strategy: Tag stored on the resulting ``Credential``.
        is_configured: Whether the config carries what this strategy needs.
        acquire: Returns ``(secret, ttl)`` for the candidate credential, or
            None when nothing could be obtained. May perform network I/O.
    """

    strategy: AuthStrategy
    is_configured: Callable[[Config], bool]
    acquire: Callable[[AuthenticationManager], tuple[str, timedelta] | None]


def _acquire_api_key(manager: AuthenticationManager):
    return manager.config.api_key, DEFAULT_KEY_TTL


def _acquire_oauth_token(manager: AuthenticationManager):
    return manager.request_oauth_token()


STRATEGIES: tuple[StrategyDescriptor, ...] = (
    StrategyDescriptor(
        strategy=AuthStrategy.API_KEY,
        is_configured=lambda c: bool(c.api_key and c.site_id),
        acquire=_acquire_api_key,
    ),
    StrategyDescriptor(
        strategy=AuthStrategy.OAUTH_CLIENT_CREDENTIALS,
        is_configured=lambda c: bool(c.client_id and c.client_secret),
        acquire=_acquire_oauth_token,
    ),
    StrategyDescriptor(
        strategy=AuthStrategy.BEARER,
        is_configured=lambda c: bool(c.api_key),
        acquire=_acquire_api_key,
    ),
)


class AuthenticationManager:
    """Owns the single active directory credential.

    Args:
        config: Runtime configuration carrying the raw secrets.
        strategies: Ordered strategy descriptors (highest priority first).
        clock: Returns the current UTC time; injectable for tests.
        sessions: Shared thread-local sessions (one is created if omitted).
    """

    def __init__(
        self,
        config: Config,
        strategies: tuple[StrategyDescriptor, ...] = STRATEGIES,
        clock: Callable[[], datetime] = _utcnow,
        sessions: ThreadLocalSessions | None = None,
    ):
        self.config = config
        self.strategies = strategies
        self._clock = clock
        self.sessions = sessions or ThreadLocalSessions(config.insecure)
        self._lock = threading.RLock()
        self._credential: Credential | None = None
        mask_secret(config.api_key, config.client_secret)

    def has_credentials(self) -> bool:
        """True when at least one strategy has the settings it needs."""
        return any(d.is_configured(self.config) for d in self.strategies)

    def current_credential(self) -> Credential | None:
        return self._credential

    def is_valid(self) -> bool:
        """Pure time check of the active credential against its expiry."""
        credential = self._credential
        return credential is not None and credential.is_valid(self._clock())

    def invalidate(self) -> None:
        """Drop the active credential (e.g. after a 401/403)."""
        with self._lock:
            if self._credential is not None:
                logger.info(
                    "Discarding %s credential", self._credential.strategy.value
                )
            self._credential = None

    def ensure_valid(self) -> bool:
        """Authenticate only if there is no unexpired credential."""
        with self._lock:
            if self.is_valid():
                return True
            return self.authenticate()

    def authenticate(self) -> bool:
        """Try every configured strategy in priority order.

        The first strategy whose probe answers HTTP 200 becomes the active
        credential. Network errors are logged per strategy and never stop
        the chain. The previous credential stays in place (and valid for
        concurrent callers) until a replacement is accepted.

        Returns:
            True if a credential was established, False if all strategies
            failed (no credential is held afterwards).
        """
        with self._lock:
            for descriptor in self.strategies:
                name = descriptor.strategy.value
                if not descriptor.is_configured(self.config):
                    logger.debug("Skipping %s: not configured", name)
                    continue
                try:
                    acquired = descriptor.acquire(self)
                    if acquired is None:
                        continue
                    secret, ttl = acquired
                    candidate = Credential(
                        strategy=descriptor.strategy,
                        secret=secret,
                        expires_at=self._clock() + ttl,
                    )
                    if self._probe(candidate):
                        self._credential = candidate
                        logger.info(
                            "Authenticated with remote directory using %s",
                            name,
                        )
                        return True
                except requests.RequestException as e:
                    logger.warning("%s authentication failed: %s", name, e)

            self._credential = None
            logger.error("All remote directory authentication methods failed")
            return False

    def auth_headers(self) -> dict[str, str]:
        """Headers for a directory request using the active credential."""
        credential = self._credential
        if credential is None:
            return {}
        return self._headers_for(credential)

    def _headers_for(self, credential: Credential) -> dict[str, str]:
        headers = {"Authorization": credential.authorization()}
        if self.config.site_id:
            headers[SITE_ID_HEADER] = self.config.site_id
        return headers

    def _probe(self, candidate: Credential) -> bool:
        response = self.sessions.get().get(
            f"{self.config.base_url}{MEMBERS_PATH}",
            params={"paging.limit": 1},
            headers=self._headers_for(candidate),
            timeout=(CONNECT_TIMEOUT, self.config.request_timeout),
        )
        if response.status_code == 200:
            return True
        logger.debug(
            "%s probe answered HTTP %s",
            candidate.strategy.value,
            response.status_code,
        )
        return False

    def request_oauth_token(self) -> tuple[str, timedelta] | None:
        """Run the OAuth2 client-credentials grant.

        Returns:
            ``(access_token, ttl)`` or None if the endpoint refused.
        """
        response = self.sessions.get().post(
            self.config.token_url + "/token",
            json={
                "grant_type": "client_credentials",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            timeout=(CONNECT_TIMEOUT, self.config.request_timeout),
        )
        if response.status_code != 200:
            logger.debug("OAuth token endpoint answered HTTP %s", response.status_code)
            return None
        data = response.json()
        token = data.get("access_token")
        if not token:
            return None
        mask_secret(token)
        expires_in = int(data.get("expires_in") or DEFAULT_OAUTH_TTL_SECONDS)
        return token, timedelta(seconds=expires_in)
