"""Tests for time utilities."""

from datetime import datetime, timedelta, timezone


class TestUtcNow:
    """Tests for utc_now()."""

    def test_returns_utc_datetime(self):
        from rfcbot.infra.time import utc_now

        now = utc_now()
        assert now.tzinfo == timezone.utc

    def test_returns_current_time(self):
        from rfcbot.infra.time import utc_now

        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after

    def test_naive_has_no_tzinfo(self):
        from rfcbot.infra.time import utc_now_naive

        assert utc_now_naive().tzinfo is None


class TestGitHubTimestamps:
    def test_parse(self):
        from rfcbot.infra.time import parse_github_timestamp

        assert parse_github_timestamp("2018-06-20T06:28:54Z") == datetime(2018, 6, 20, 6, 28, 54)

    def test_parse_empty(self):
        from rfcbot.infra.time import parse_github_timestamp

        assert parse_github_timestamp(None) is None
        assert parse_github_timestamp("") is None

    def test_format_naive(self):
        from rfcbot.infra.time import format_github_timestamp

        assert format_github_timestamp(datetime(2015, 5, 15)) == "2015-05-15T00:00:00Z"

    def test_format_aware_converts_to_utc(self):
        from rfcbot.infra.time import format_github_timestamp

        value = datetime(2020, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_github_timestamp(value) == "2020-01-01T10:00:00Z"
