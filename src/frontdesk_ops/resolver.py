"""Cache-first identity resolution with remote fallback and write-through.

Lookups always consult the local cache first so the desk keeps working
offline. Whatever the remote directory returns is written back to the cache
before it is handed to the caller, which keeps the cache converging on the
directory without a separate sync job.
"""

from __future__ import annotations

import logging
from typing import Any

from .core.client import RemoteDirectoryClient
from .models import Member
from .storage.cache import LocalCache

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(
        self, cache: LocalCache, remote: RemoteDirectoryClient
    ) -> None:
        self.cache = cache
        self.remote = remote

    def _write_through(self, member: Member) -> Member:
        result = self.cache.upsert_member(member)
        stored = self.cache.get_member(result.id)
        return stored if stored is not None else member

    def resolve(self, external_id: str) -> Member | None:
        """Find a member by directory id.

        Returns:
            The member, or None when neither the cache nor the directory
            knows the id.

        Raises:
            ConfigurationMissing, AuthenticationRejected, RemoteUnavailable:
                Only on a cache miss, when the remote lookup itself fails.
        """
        cached = self.cache.get_member_by_external_id(external_id)
        if cached is not None:
            logger.debug("Resolved member %s from cache", external_id)
            return cached

        remote = self.remote.get_by_id(external_id)
        if remote is None:
            logger.info("Member %s not found locally or remotely", external_id)
            return None

        logger.info("Resolved member %s from remote directory", external_id)
        return self._write_through(remote)

    def search(self, term: str, local_only: bool = False) -> list[Member]:
        """Search the cache, falling back to the directory on zero hits.

        Remote hits are written through to the cache and returned as stored,
        deduplicated by ``external_id`` with the last remote hit winning.
        """
        local = self.cache.search_members(term)
        if local or local_only or not term.strip():
            return local

        remote_hits = self.remote.search(term)
        merged: dict[Any, Member] = {}
        for member in remote_hits:
            stored = self._write_through(member)
            merged[stored.external_id or ("local", stored.id)] = stored
        return list(merged.values())

    def update(self, external_id: str, patch: dict[str, Any]) -> Member:
        """Update a member in the directory and cache the returned snapshot."""
        updated = self.remote.update(external_id, patch)
        if updated.external_id is None:
            updated = updated.model_copy(update={"external_id": external_id})
        return self._write_through(updated)
