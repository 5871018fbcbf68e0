"""Tests for frontdesk_ops.resolver: cache-first lookup with write-through."""

from unittest.mock import Mock

import pytest

from frontdesk_ops.core.client import RemoteDirectoryClient
from frontdesk_ops.errors import RemoteUnavailable
from frontdesk_ops.models import Member, MembershipStatus
from frontdesk_ops.resolver import IdentityResolver


@pytest.fixture
def remote():
    return Mock(spec=RemoteDirectoryClient)


@pytest.fixture
def resolver(cache, remote):
    return IdentityResolver(cache, remote)


class TestResolve:
    def test_cache_hit_skips_remote(self, resolver, cache, remote):
        cache.upsert_member(Member(external_id="wix-1", first_name="Ada"))

        member = resolver.resolve("wix-1")

        assert member.first_name == "Ada"
        remote.get_by_id.assert_not_called()

    def test_cache_miss_writes_through(self, resolver, cache, remote, clock):
        remote.get_by_id.return_value = Member(
            external_id="wix-2",
            first_name="Grace",
            membership_status=MembershipStatus.ACTIVE,
        )

        member = resolver.resolve("wix-2")

        assert member.id is not None
        assert member.last_synced_at == clock.now
        assert cache.get_member_by_external_id("wix-2") == member

        # second lookup is served from the cache
        resolver.resolve("wix-2")
        remote.get_by_id.assert_called_once_with("wix-2")

    def test_not_found_anywhere(self, resolver, remote):
        remote.get_by_id.return_value = None
        assert resolver.resolve("ghost") is None

    def test_remote_failure_on_miss_propagates(self, resolver, remote):
        remote.get_by_id.side_effect = RemoteUnavailable("offline")
        with pytest.raises(RemoteUnavailable):
            resolver.resolve("wix-3")


class TestSearch:
    def test_local_hits_win(self, resolver, cache, remote):
        cache.upsert_member(Member(external_id="wix-1", first_name="Ada"))

        found = resolver.search("ada")

        assert [m.external_id for m in found] == ["wix-1"]
        remote.search.assert_not_called()

    def test_local_only_never_calls_remote(self, resolver, remote):
        assert resolver.search("nobody", local_only=True) == []
        remote.search.assert_not_called()

    def test_blank_term_never_calls_remote(self, resolver, remote):
        assert resolver.search("  ") == []
        remote.search.assert_not_called()

    def test_remote_fallback_writes_through(self, resolver, cache, remote):
        remote.search.return_value = [
            Member(external_id="wix-7", first_name="Alan", last_name="Turing"),
            Member(external_id="wix-8", first_name="Alan", last_name="Kay"),
        ]

        found = resolver.search("alan")

        assert [m.external_id for m in found] == ["wix-7", "wix-8"]
        assert all(m.id is not None for m in found)
        remote.search.assert_called_once_with("alan")
        assert {m.external_id for m in cache.search_members("alan")} == {
            "wix-7",
            "wix-8",
        }

    def test_remote_duplicates_collapse(self, resolver, remote):
        remote.search.return_value = [
            Member(external_id="wix-7", phone="1"),
            Member(external_id="wix-7", phone="2"),
        ]
        [member] = resolver.search("7")
        assert member.phone == "2"


class TestUpdate:
    def test_update_caches_returned_snapshot(self, resolver, cache, remote):
        cache.upsert_member(Member(external_id="wix-1", phone="old"))
        remote.update.return_value = Member(external_id="wix-1", phone="new")

        member = resolver.update("wix-1", {"contact": {"phones": ["new"]}})

        assert member.phone == "new"
        assert cache.get_member_by_external_id("wix-1").phone == "new"
        remote.update.assert_called_once_with(
            "wix-1", {"contact": {"phones": ["new"]}}
        )

    def test_update_fills_missing_external_id(self, resolver, remote):
        remote.update.return_value = Member(first_name="Ada")
        member = resolver.update("wix-5", {"contact": {"firstName": "Ada"}})
        assert member.external_id == "wix-5"
