"""Tests for market time window parsing."""

from datetime import datetime, timezone

from copybot.market_time import MarketTimeInfo, parse_market_time

TITLE = "Bitcoin Up or Down - October 17, 6:30PM-6:45PM ET"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestParseMarketTime:
    def test_minutes_remaining(self):
        # 22:05 UTC is 6:05PM EDT
        info = parse_market_time(TITLE, now=utc(2026, 10, 17, 22, 5))
        assert info == MarketTimeInfo(minutes_remaining=40.0, end_time="6:45PM ET")

    def test_no_window_returns_none(self):
        assert parse_market_time("Will the Fed cut rates in December?") is None
        assert parse_market_time("") is None

    def test_window_already_ended_is_negative(self):
        info = parse_market_time(TITLE, now=utc(2026, 10, 17, 23, 0))
        assert info.minutes_remaining == -15.0

    def test_window_crossing_midnight(self):
        # 03:50 UTC on Oct 18 is 11:50PM EDT on Oct 17
        info = parse_market_time(
            "ETH Up or Down - 11:45PM-12:00AM ET", now=utc(2026, 10, 18, 3, 50)
        )
        assert info.minutes_remaining == 10.0
        assert info.end_time == "12:00AM ET"

    def test_standard_time_offset(self):
        # January: ET is UTC-5, so 22:35 UTC is 5:35PM EST
        info = parse_market_time(
            "Bitcoin Up or Down - January 15, 5:30PM-5:45PM ET",
            now=utc(2026, 1, 15, 22, 35),
        )
        assert info.minutes_remaining == 10.0

    def test_hours_without_minutes(self):
        info = parse_market_time(
            "Solana Up or Down - 6PM-7PM ET", now=utc(2026, 10, 17, 22, 30)
        )
        assert info.minutes_remaining == 30.0
        assert info.end_time == "7:00PM ET"

    def test_case_insensitive(self):
        info = parse_market_time(
            "btc up or down 6:30pm-6:45pm et", now=utc(2026, 10, 17, 22, 5)
        )
        assert info.minutes_remaining == 40.0

    def test_naive_now_is_utc(self):
        info = parse_market_time(TITLE, now=datetime(2026, 10, 17, 22, 5))
        assert info.minutes_remaining == 40.0
