from __future__ import annotations

import logging
from datetime import date
from typing import Any

import requests

from ..config import Config
from ..errors import (
    AuthenticationRejected,
    ConfigurationMissing,
    RemoteRequestError,
    RemoteUnavailable,
)
from ..models import Member, MembershipStatus
from .auth import MEMBERS_PATH, AuthenticationManager
from .http import CONNECT_TIMEOUT

logger = logging.getLogger(__name__)

_AUTH_REJECTED = (401, 403)
_NESTED_CONTACT_KEYS = ("contactDetails", "contactInfo", "contact", "profile")


def _first(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


def _first_of_list(value: Any) -> Any:
    """Return the first entry of a list of strings or ``{"email": ...}`` dicts."""
    if not isinstance(value, list) or not value:
        return None
    head = value[0]
    if isinstance(head, dict):
        return _first(head.get("email"), head.get("phone"), head.get("value"))
    return head


def _parse_expiry(value: Any) -> date | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.debug("Ignoring unparseable membership expiry %r", value)
        return None


def member_from_payload(payload: dict[str, Any]) -> Member:
    """Map a directory member payload onto ``Member``.

    Accepts flat payloads (``firstName``/``first_name``) as well as the
    nested shapes the directory returns (``contactDetails``, ``contact``,
    ``profile``), with emails and phones given either as scalars or lists.
    """
    nested: dict[str, Any] = {}
    for key in _NESTED_CONTACT_KEYS:
        section = payload.get(key)
        if isinstance(section, dict):
            for k, v in section.items():
                nested.setdefault(k, v)

    external_id = _first(payload.get("id"), payload.get("_id"))
    return Member(
        external_id=str(external_id) if external_id else None,
        first_name=_first(
            payload.get("firstName"),
            payload.get("first_name"),
            nested.get("firstName"),
        )
        or "",
        last_name=_first(
            payload.get("lastName"),
            payload.get("last_name"),
            nested.get("lastName"),
        )
        or "",
        email=_first(
            payload.get("loginEmail"),
            payload.get("email"),
            nested.get("email"),
            _first_of_list(nested.get("emails")),
        )
        or "",
        phone=_first(
            payload.get("phone"),
            nested.get("phone"),
            _first_of_list(nested.get("phones")),
        )
        or "",
        membership_status=MembershipStatus.parse(
            _first(
                payload.get("membershipStatus"),
                payload.get("membership_status"),
            )
        ),
        membership_expiry=_parse_expiry(
            _first(
                payload.get("membershipExpiry"),
                payload.get("membershipExpiryDate"),
                payload.get("membership_expiry"),
            )
        ),
    )


def member_patch(
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> dict[str, Any]:
    """Build a directory update body containing only the given fields."""
    contact: dict[str, Any] = {}
    if first_name:
        contact["firstName"] = first_name
    if last_name:
        contact["lastName"] = last_name
    if email:
        contact["emails"] = [email]
    if phone:
        contact["phones"] = [phone]
    return {"contact": contact}


class RemoteDirectoryClient:
    """Typed access to the remote member directory.

    Every call makes sure a valid credential is held first. An authorization
    rejection triggers exactly one re-authentication and one retry; a second
    rejection surfaces as ``AuthenticationRejected``.
    """

    def __init__(self, config: Config, auth: AuthenticationManager):
        self.config = config
        self.auth = auth

    def _ensure_authenticated(self) -> None:
        if self.auth.is_valid():
            return
        if not self.auth.has_credentials():
            raise ConfigurationMissing("remote directory credentials")
        if not self.auth.ensure_valid():
            raise AuthenticationRejected(
                "No authentication strategy was accepted by the remote directory"
            )

    def _send(
        self, method: str, path: str, **kwargs: Any
    ) -> requests.Response:
        url = f"{self.config.base_url}{path}"
        try:
            return self.auth.sessions.get().request(
                method,
                url,
                headers=self.auth.auth_headers(),
                timeout=(CONNECT_TIMEOUT, self.config.request_timeout),
                **kwargs,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RemoteUnavailable(
                f"Remote directory unreachable: {e}"
            ) from e

    def _request(
        self,
        method: str,
        path: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> dict[str, Any] | None:
        """Send one directory request and decode the JSON body.

        Returns:
            The decoded body, or None for a 404 when ``allow_not_found``.

        Raises:
            ConfigurationMissing: No credentials are configured at all.
            AuthenticationRejected: Credentials were refused twice.
            RemoteUnavailable: Network failure, timeout, 5xx or a body that
                is not a JSON object.
            RemoteRequestError: Any other 4xx.
        """
        self._ensure_authenticated()
        response = self._send(method, path, **kwargs)

        if response.status_code in _AUTH_REJECTED:
            logger.info(
                "Remote directory answered HTTP %s; re-authenticating once",
                response.status_code,
            )
            self.auth.invalidate()
            if not self.auth.authenticate():
                raise AuthenticationRejected(
                    "Re-authentication failed", response.status_code
                )
            response = self._send(method, path, **kwargs)
            if response.status_code in _AUTH_REJECTED:
                raise AuthenticationRejected(
                    "Remote directory rejected refreshed credentials",
                    response.status_code,
                )

        if response.status_code == 404 and allow_not_found:
            return None
        if response.status_code >= 500:
            raise RemoteUnavailable(
                f"Remote directory error: HTTP {response.status_code}"
            )
        if response.status_code >= 400:
            raise RemoteRequestError(
                f"{method} {path} failed: HTTP {response.status_code} {response.text[:200]}",
                response.status_code,
            )
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            # e.g. a captive portal answering 200 with an HTML page
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise RemoteUnavailable(
                "Remote directory returned a response that is not JSON"
            ) from e
        if not isinstance(data, dict):
            raise RemoteUnavailable(
                f"Remote directory returned {type(data).__name__} instead of an object"
            )
        return data

    def get_by_id(self, member_id: str) -> Member | None:
        """Fetch one member; None when the directory does not know the id."""
        data = self._request(
            "GET",
            f"{MEMBERS_PATH}/{member_id}",
            allow_not_found=True,
            params={"fieldsets": "FULL"},
        )
        if data is None:
            return None
        return member_from_payload(data.get("member", data))

    def search(self, query: str, limit: int = 50) -> list[Member]:
        """Free-text member search."""
        data = self._request(
            "POST",
            f"{MEMBERS_PATH}/search",
            json={"query": query, "limit": limit},
        )
        members = [member_from_payload(m) for m in data.get("members", [])]
        logger.info(
            "Remote member search for %r returned %d result(s)",
            query,
            len(members),
        )
        return members

    def list(self, limit: int = 50, offset: int = 0) -> list[Member]:
        data = self._request(
            "GET",
            MEMBERS_PATH,
            params={
                "fieldsets": "FULL",
                "paging.limit": limit,
                "paging.offset": offset,
            },
        )
        return [member_from_payload(m) for m in data.get("members", [])]

    def update(self, member_id: str, patch: dict[str, Any]) -> Member:
        """Apply a partial update and return the directory's new snapshot."""
        data = self._request(
            "PATCH",
            f"{MEMBERS_PATH}/{member_id}",
            json={"member": patch},
        )
        logger.info("Updated remote member %s", member_id)
        return member_from_payload(data.get("member", data))
