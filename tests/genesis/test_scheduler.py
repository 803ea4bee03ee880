from datetime import datetime, timedelta, timezone

import pytest

from valfleet.genesis.scheduler import GenesisTimestamp, schedule_genesis


def test_genesis_is_now_plus_offset_in_millis():
    now = datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    g = schedule_genesis(timedelta(minutes=5), now=now)
    start_ms = int(datetime(2024, 1, 1, 12, 0, 0, 123000, tzinfo=timezone.utc).timestamp()) * 1000 + 123
    assert g.millis == start_ms + 5 * 60 * 1000
    assert g.millis > start_ms


def test_naive_now_is_utc():
    naive = datetime(2024, 1, 1, 0, 0, 0)
    aware = naive.replace(tzinfo=timezone.utc)
    assert schedule_genesis(timedelta(seconds=30), now=naive) == schedule_genesis(timedelta(seconds=30), now=aware)


def test_default_now_is_in_the_future():
    before = datetime.now(timezone.utc)
    g = schedule_genesis(timedelta(seconds=300))
    assert g.as_datetime() >= before + timedelta(seconds=300) - timedelta(milliseconds=1)


def test_render_formats():
    g = GenesisTimestamp(millis=1_700_000_000_000)
    assert g.render() == "1700000000000"
    assert g.render("rfc3339") == '"2023-11-14T22:13:20.000Z"'
    with pytest.raises(ValueError):
        g.render("unix")


@pytest.mark.parametrize("offset", [timedelta(0), timedelta(seconds=-1)])
def test_offset_must_be_positive(offset):
    with pytest.raises(ValueError):
        schedule_genesis(offset)
