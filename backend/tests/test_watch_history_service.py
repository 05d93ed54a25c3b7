from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from videotube.core.errors import NotFoundError, ValidationError
from videotube.models import WatchHistory
from videotube.services import watch_history_service as wh


@pytest.fixture
def video(make_video, bob):
    return make_video(bob, title="Intro to Python", duration=600.0)


# --- record_progress ---


def test_first_report_creates_row(db, alice, video):
    row = wh.record_progress(db, alice.id, video.id, 120, {"user_agent": "UA", "platform": "web"})

    assert row.watch_progress == 120
    assert row.watch_percentage == pytest.approx(20.0)
    assert row.watch_sessions == 1
    assert row.is_completed is False
    assert row.device_user_agent == "UA"
    assert row.device_platform == "web"
    assert row.device_browser == ""


def test_progress_is_merge_max(db, alice, video):
    wh.record_progress(db, alice.id, video.id, 300)
    row = wh.record_progress(db, alice.id, video.id, 100)

    assert row.watch_progress == 300
    assert row.watch_percentage == pytest.approx(50.0)
    assert row.watch_sessions == 2


def test_late_lower_report_keeps_completion(db, alice, video):
    wh.record_progress(db, alice.id, video.id, 540)
    row = wh.record_progress(db, alice.id, video.id, 300)

    assert row.watch_progress == 540
    assert row.watch_percentage == pytest.approx(90.0)
    assert row.is_completed is True


def test_concurrent_first_report_is_folded_into_existing_row(db, alice, video, mocker):
    wh.record_progress(db, alice.id, video.id, 100, {"user_agent": "UA", "platform": "web"})
    real_find = wh._find
    calls = []

    def find_misses_once(*args):
        calls.append(args)
        return None if len(calls) == 1 else real_find(*args)

    mocker.patch.object(wh, "_find", side_effect=find_misses_once)

    row = wh.record_progress(db, alice.id, video.id, 540, {"browser": "Firefox"})

    assert len(calls) == 2
    assert db.query(WatchHistory).filter_by(user_id=alice.id, video_id=video.id).count() == 1
    assert row.watch_progress == 540
    assert row.watch_sessions == 2
    assert row.is_completed is True
    assert row.device_user_agent == "UA"
    assert row.device_platform == "web"
    assert row.device_browser == "Firefox"


def test_one_row_per_user_and_video(db, alice, video):
    for progress in (10, 20, 30):
        wh.record_progress(db, alice.id, video.id, progress)

    assert db.query(WatchHistory).filter_by(user_id=alice.id, video_id=video.id).count() == 1


def test_completion_at_ninety_percent(db, alice, video):
    row = wh.record_progress(db, alice.id, video.id, 540)

    assert row.watch_percentage == pytest.approx(90.0)
    assert row.is_completed is True
    assert row.completed_at is not None


def test_completion_never_resets(db, alice, video):
    completed_at = wh.record_progress(db, alice.id, video.id, 590).completed_at
    wh.record_progress(db, alice.id, video.id, 10)
    row = wh.record_progress(db, alice.id, video.id, 600)

    assert row.is_completed is True
    assert row.completed_at == completed_at
    assert row.watch_progress == 600
    assert row.watch_percentage == pytest.approx(100.0)


def test_percentage_is_capped_at_100(db, alice, video):
    row = wh.record_progress(db, alice.id, video.id, 900)

    assert row.watch_percentage == 100.0


def test_zero_duration_skips_percentage(db, alice, bob, make_video):
    live = make_video(bob, title="Live stream", duration=0.0)
    row = wh.record_progress(db, alice.id, live.id, 5000)

    assert row.watch_progress == 5000
    assert row.watch_percentage == 0.0
    assert row.is_completed is False


@pytest.mark.parametrize("bad", [-1, "abc", None, True, float("nan")])
def test_invalid_progress_is_rejected(db, alice, video, bad):
    with pytest.raises(ValidationError):
        wh.record_progress(db, alice.id, video.id, bad)
    assert db.query(WatchHistory).count() == 0


def test_empty_device_fields_do_not_clear_stored_values(db, alice, video):
    wh.record_progress(db, alice.id, video.id, 10, {"user_agent": "UA", "browser": "Firefox"})
    row = wh.record_progress(db, alice.id, video.id, 20, {"user_agent": "", "platform": "ios"})

    assert row.device_user_agent == "UA"
    assert row.device_browser == "Firefox"
    assert row.device_platform == "ios"


def test_long_device_fields_are_clipped_to_column_width(db, alice, video):
    row = wh.record_progress(db, alice.id, video.id, 10, {"user_agent": "U" * 2000, "browser": "B" * 500})

    assert row.device_user_agent == "U" * 512
    assert row.device_browser == "B" * 64


def test_paused_user_is_not_recorded(db, alice, video):
    wh.pause_tracking(db, alice.id)

    assert wh.record_progress(db, alice.id, video.id, 100) is None
    assert db.query(WatchHistory).count() == 0

    wh.resume_tracking(db, alice.id)
    assert wh.record_progress(db, alice.id, video.id, 100) is not None


def test_missing_video_still_records_progress(db, alice):
    row = wh.record_progress(db, alice.id, 4242, 30)

    assert row.watch_progress == 30
    assert row.watch_percentage == 0.0


# --- get_watch_history ---


def _set_last_watched(db, row, when):
    row.last_watched_at = when
    db.commit()


def test_history_newest_first_with_video_and_channel(db, alice, bob, make_video):
    older = make_video(bob, title="Older")
    newer = make_video(bob, title="Newer")
    now = datetime.now(timezone.utc)
    _set_last_watched(db, wh.record_progress(db, alice.id, older.id, 10), now - timedelta(hours=2))
    _set_last_watched(db, wh.record_progress(db, alice.id, newer.id, 10), now - timedelta(hours=1))

    page = wh.get_watch_history(db, alice.id)

    assert [e["video"]["title"] for e in page["items"]] == ["Newer", "Older"]
    assert page["items"][0]["channel"] == {
        "id": bob.id,
        "username": "bob",
        "full_name": "Bob Jones",
        "avatar": bob.avatar,
    }
    assert page["total_items"] == 2


def test_history_search_matches_title_description_and_channel(db, alice, bob, make_user, make_video):
    carol = make_user(full_name="Carol King", username="carolcooks")
    make_video_ids = [
        make_video(bob, title="Python tips").id,
        make_video(bob, title="Other", description="all about PYTHON").id,
        make_video(carol, title="Pasta").id,
        make_video(bob, title="Gardening").id,
    ]
    for vid in make_video_ids:
        wh.record_progress(db, alice.id, vid, 10)

    assert wh.get_watch_history(db, alice.id, search="python")["total_items"] == 2
    assert wh.get_watch_history(db, alice.id, search="CAROL")["total_items"] == 1
    assert wh.get_watch_history(db, alice.id, search="   ")["total_items"] == 4


def test_history_filters_completed_and_channel(db, alice, bob, make_user, make_video):
    carol = make_user(full_name="Carol King")
    done = make_video(bob, title="Done", duration=100)
    partial = make_video(carol, title="Partial", duration=100)
    wh.record_progress(db, alice.id, done.id, 95)
    wh.record_progress(db, alice.id, partial.id, 5)

    completed = wh.get_watch_history(db, alice.id, completed_only=True)
    by_channel = wh.get_watch_history(db, alice.id, channel_id=carol.id)

    assert [e["video_id"] for e in completed["items"]] == [done.id]
    assert [e["video_id"] for e in by_channel["items"]] == [partial.id]


def test_history_date_range(db, alice, bob, make_video):
    now = datetime.now(timezone.utc)
    for days_ago in (10, 5, 1):
        v = make_video(bob, title=f"{days_ago} days ago")
        _set_last_watched(db, wh.record_progress(db, alice.id, v.id, 10), now - timedelta(days=days_ago))

    page = wh.get_watch_history(db, alice.id, date_from=now - timedelta(days=7), date_to=now - timedelta(days=2))

    assert [e["video"]["title"] for e in page["items"]] == ["5 days ago"]


def test_history_pagination(db, alice, bob, make_video):
    for i in range(5):
        wh.record_progress(db, alice.id, make_video(bob, title=f"v{i}").id, 10)

    page = wh.get_watch_history(db, alice.id, page=3, page_size=2)

    assert len(page["items"]) == 1
    assert page["has_next_page"] is False
    assert page["has_prev_page"] is True
    assert page["total_pages"] == 3


# --- Stats ---


def test_stats_zeroed_without_history(db, alice):
    stats = wh.get_user_stats(db, alice.id)

    assert stats == {
        "total_videos_watched": 0,
        "total_watch_time": 0.0,
        "total_watch_time_formatted": "0h 0m",
        "completed_videos": 0,
        "average_watch_percentage": 0.0,
        "total_watch_sessions": 0,
        "oldest_watch": None,
        "latest_watch": None,
    }


def test_stats_aggregate(db, alice, bob, make_video):
    a = make_video(bob, duration=4000)
    b = make_video(bob, duration=1000)
    wh.record_progress(db, alice.id, a.id, 3700)
    wh.record_progress(db, alice.id, b.id, 200)
    wh.record_progress(db, alice.id, b.id, 100)

    stats = wh.get_user_stats(db, alice.id)

    assert stats["total_videos_watched"] == 2
    assert stats["total_watch_time"] == 3900.0
    assert stats["total_watch_time_formatted"] == "1h 5m"
    assert stats["completed_videos"] == 1
    assert stats["average_watch_percentage"] == pytest.approx((92.5 + 20.0) / 2)
    assert stats["total_watch_sessions"] == 3
    assert stats["latest_watch"] is not None


def test_format_watch_time():
    assert wh.format_watch_time(0) == "0h 0m"
    assert wh.format_watch_time(59) == "0h 0m"
    assert wh.format_watch_time(3660) == "1h 1m"
    assert wh.format_watch_time(36000) == "10h 0m"


# --- Clear / remove / pause ---


def test_clear_watch_history_only_touches_caller(db, alice, bob, video):
    wh.record_progress(db, alice.id, video.id, 10)
    wh.record_progress(db, bob.id, video.id, 10)

    assert wh.clear_watch_history(db, alice.id) == 1
    assert db.query(WatchHistory).filter_by(user_id=bob.id).count() == 1


def test_clear_rolls_back_when_delete_fails(db, alice, mocker):
    user_id = alice.id
    rollback = mocker.spy(db, "rollback")
    mocker.patch.object(db, "query", side_effect=OperationalError("DELETE", {}, Exception("db down")))

    with pytest.raises(OperationalError):
        wh.clear_watch_history(db, user_id)
    assert rollback.call_count == 1


def test_remove_from_watch_history(db, alice, video):
    wh.record_progress(db, alice.id, video.id, 10)

    wh.remove_from_watch_history(db, alice.id, video.id)

    assert db.query(WatchHistory).count() == 0
    with pytest.raises(NotFoundError):
        wh.remove_from_watch_history(db, alice.id, video.id)


def test_tracking_status_round_trip(db, alice):
    assert wh.get_tracking_status(db, alice.id) == {"paused": False}
    assert wh.pause_tracking(db, alice.id) == {"paused": True}
    assert wh.get_tracking_status(db, alice.id) == {"paused": True}
    assert wh.resume_tracking(db, alice.id) == {"paused": False}


def test_pause_unknown_user(db):
    with pytest.raises(NotFoundError):
        wh.pause_tracking(db, 999)
