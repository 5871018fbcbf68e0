"""Tests for frontdesk_ops.sync: the cloud sync sweep and its report."""

from unittest.mock import Mock

import pytest

from frontdesk_ops.models import CheckIn, Incident, Member, SyncStatus
from frontdesk_ops.sync.models import PushResult, SyncReport
from frontdesk_ops.sync.sweeper import CloudSyncSweeper


@pytest.fixture
def pusher():
    return Mock()


@pytest.fixture
def sweeper(cache, tracker, pusher):
    return CloudSyncSweeper(cache, tracker, pusher)


class TestSweep:
    def test_pushes_pending_records(self, cache, tracker, pusher, sweeper):
        check_in = cache.insert_check_in(CheckIn(purpose="Gym"))
        incident = cache.insert_incident(Incident(description="Spill"))

        report = sweeper.run()

        assert len(report.synced) == 2
        assert report.failed == []
        assert tracker.get("check_ins", check_in).sync_status == SyncStatus.SYNCED
        assert tracker.get("incidents", incident).sync_status == SyncStatus.SYNCED
        pushed_tables = [c.args[0] for c in pusher.push.call_args_list]
        assert sorted(pushed_tables) == ["check_ins", "incidents"]
        row = next(
            c.args[1] for c in pusher.push.call_args_list if c.args[0] == "check_ins"
        )
        assert row["id"] == check_in
        assert row["purpose"] == "Gym"

    def test_failure_is_recorded_then_retried(self, cache, tracker, pusher, sweeper):
        record_id = cache.insert_check_in(CheckIn())
        pusher.push.side_effect = ConnectionError("cloud down")

        first = sweeper.run()

        [failed] = first.failed
        assert failed.retried is False
        assert "cloud down" in failed.error
        record = tracker.get("check_ins", record_id)
        assert record.sync_status == SyncStatus.FAILED
        assert "cloud down" in record.error_message

        pusher.push.side_effect = None
        second = sweeper.run()

        [result] = second.results
        assert result.success is True
        assert result.retried is True
        assert tracker.get("check_ins", record_id).sync_status == SyncStatus.SYNCED

    def test_missing_local_row_fails(self, tracker, pusher, sweeper):
        tracker.mark_pending("incidents", 999)

        report = sweeper.run()

        [failed] = report.failed
        assert "no longer exists" in failed.error
        pusher.push.assert_not_called()

    def test_unknown_table_fails_without_push(self, tracker, pusher, sweeper):
        tracker.mark_pending("lockers", 1)
        report = sweeper.run()
        assert len(report.failed) == 1
        assert tracker.get("lockers", 1).sync_status == SyncStatus.FAILED
        pusher.push.assert_not_called()

    def test_synced_records_are_not_pushed_again(self, cache, pusher, sweeper):
        cache.insert_check_in(CheckIn())
        sweeper.run()
        pusher.push.reset_mock()

        report = sweeper.run()

        assert report.results == []
        pusher.push.assert_not_called()


    def test_edit_during_push_stays_pending(self, cache, tracker, pusher, sweeper):
        cache.upsert_member(Member(external_id="wix-1", first_name="Ada"))

        def edit_while_pushing(table, row):
            cache.upsert_member(Member(external_id="wix-1", first_name="Augusta"))

        pusher.push.side_effect = edit_while_pushing
        sweeper.run()

        member_id = cache.get_member_by_external_id("wix-1").id
        assert tracker.get("members", member_id).sync_status == SyncStatus.PENDING

        pusher.push.side_effect = None
        sweeper.run()

        last_push = pusher.push.call_args_list[-1]
        assert last_push.args[1]["first_name"] == "Augusta"
        assert tracker.get("members", member_id).sync_status == SyncStatus.SYNCED

    def test_edit_during_failed_push_stays_pending(self, cache, tracker, pusher, sweeper):
        record_id = cache.insert_check_in(CheckIn())

        def fail_after_edit(table, row):
            tracker.mark_pending("check_ins", record_id)
            raise ConnectionError("cloud down")

        pusher.push.side_effect = fail_after_edit
        sweeper.run()

        assert tracker.get("check_ins", record_id).sync_status == SyncStatus.PENDING

class TestSyncReport:
    def test_summary_lists_failures(self):
        report = SyncReport(
            results=[
                PushResult(table_name="check_ins", record_id=1, success=True),
                PushResult(
                    table_name="incidents",
                    record_id=2,
                    retried=True,
                    success=False,
                    error="timeout",
                ),
            ],
            started_at="2026-10-19T09:30:00+00:00",
        )
        summary = report.summary()
        assert "Synced:  1" in summary
        assert "Failed:  1" in summary
        assert "Retried: 1" in summary
        assert "incidents#2: timeout" in summary
