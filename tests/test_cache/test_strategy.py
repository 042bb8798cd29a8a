"""Tests for the cache strategy catalog."""

import pytest

from footy_cache.cache.strategy import (
    CACHE_STRATEGIES,
    DataCategory,
    Priority,
    build_tags,
    get_strategy,
    strategy_for_status,
    ttl_for_status,
    warming_order,
)


class TestCatalog:
    """Tests for the category -> strategy table."""

    def test_every_category_has_strategy(self) -> None:
        """Test no category is missing from the catalog."""
        assert set(CACHE_STRATEGIES) == set(DataCategory)

    def test_every_ttl_positive(self) -> None:
        """Test every strategy has a positive TTL."""
        for category in DataCategory:
            assert get_strategy(category).ttl_seconds > 0

    def test_volatility_bands(self) -> None:
        """Test representative TTLs of each band."""
        assert get_strategy(DataCategory.LIVE_SCORES).ttl_seconds == 15
        assert get_strategy(DataCategory.LIVE_MATCHES).ttl_seconds == 30
        assert get_strategy(DataCategory.TODAY_MATCHES).ttl_seconds == 300
        assert get_strategy(DataCategory.UPCOMING_MATCHES).ttl_seconds == 600
        assert get_strategy(DataCategory.MATCH_ANALYSIS).ttl_seconds == 900
        assert get_strategy(DataCategory.MATCH_DETAILS_COMPLETED).ttl_seconds == 86400
        assert get_strategy(DataCategory.COUNTRIES).ttl_seconds == 604800

    def test_live_scores_not_compressed(self) -> None:
        """Test tiny real-time payloads skip compression."""
        assert get_strategy(DataCategory.LIVE_SCORES).compress is False

    def test_to_dict(self) -> None:
        """Test strategy serializes with sorted tags."""
        data = get_strategy(DataCategory.TODAY_MATCHES).to_dict()
        assert data["ttl_seconds"] == 300
        assert data["tags"] == ["frequent", "matches", "today"]
        assert data["priority"] == "high"
        assert data["warm_on_startup"] is True


class TestStatusTTL:
    """Tests for status-dependent match-details TTL."""

    @pytest.mark.parametrize("status", ["live", "incomplete", "in_progress", "LIVE", " Incomplete "])
    def test_live_band(self, status: str) -> None:
        """Test in-play statuses get the live TTL."""
        assert ttl_for_status(status) == 60
        assert strategy_for_status(status) == DataCategory.MATCH_DETAILS_LIVE

    @pytest.mark.parametrize("status", ["upcoming", "not_started", "scheduled", "Scheduled"])
    def test_upcoming_band(self, status: str) -> None:
        """Test pre-match statuses get the upcoming TTL."""
        assert ttl_for_status(status) == 900

    @pytest.mark.parametrize("status", ["complete", "unknown-xyz", "", None])
    def test_everything_else_is_completed(self, status: str | None) -> None:
        """Test unknown, empty and finished statuses get the completed TTL."""
        assert ttl_for_status(status) == 86400
        assert strategy_for_status(status) == DataCategory.MATCH_DETAILS_COMPLETED


class TestWarmingOrder:
    """Tests for warm-on-startup ordering."""

    def test_only_warm_categories(self) -> None:
        """Test warming order is a subset of warm-on-startup categories."""
        order = warming_order()
        assert all(get_strategy(category).warm_on_startup for category in order)
        assert set(order) <= set(DataCategory)

    def test_priority_then_declaration_order(self) -> None:
        """Test high priority first, ties keep declaration order."""
        assert warming_order() == [
            DataCategory.TODAY_MATCHES,
            DataCategory.UPCOMING_MATCHES,
            DataCategory.TEAM_DATA,
            DataCategory.LEAGUE_TABLES,
            DataCategory.LEAGUES,
            DataCategory.COUNTRIES,
        ]

    def test_priority_rank(self) -> None:
        """Test priority ranks sort high before low."""
        assert Priority.HIGH.rank < Priority.MEDIUM.rank < Priority.LOW.rank


class TestBuildTags:
    """Tests for contextual tag construction."""

    def test_base_tags_only(self) -> None:
        """Test a category without context keeps its base tags."""
        assert build_tags(DataCategory.LIVE_MATCHES) == frozenset({"live", "matches", "real-time"})

    def test_contextual_tags(self) -> None:
        """Test context is layered onto base tags."""
        tags = build_tags(
            DataCategory.MATCH_ANALYSIS,
            match_id=42,
            team_id=7,
            league_id=3,
            date="2025-06-16",
        )
        assert tags == frozenset(
            {
                "analytics",
                "match",
                "analysis",
                "match-42",
                "team-7",
                "league-3",
                "date-2025-06-16",
            }
        )

    def test_status_tag_lowercased(self) -> None:
        """Test status tags are normalized."""
        tags = build_tags(DataCategory.MATCH_DETAILS_LIVE, status="In_Progress")
        assert "status-in_progress" in tags

    def test_extra_tags(self) -> None:
        """Test free-form tags are added."""
        tags = build_tags(DataCategory.UPCOMING_MATCHES, extra=("hours-48",))
        assert "hours-48" in tags
        assert "upcoming" in tags
