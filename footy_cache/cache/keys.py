"""Cache key construction.

Keys are deterministic in (domain, operation, params): identical queries
always produce the same key and distinct queries never collide.
"""


class CacheKeyBuilder:
    """Builder for consistent cache key generation."""

    PREFIX = "footy"
    SEPARATOR = ":"
    TAG_INDEX = "tag"

    @classmethod
    def _join(cls, *parts: object) -> str:
        return cls.SEPARATOR.join([cls.PREFIX, *(str(part) for part in parts)])

    @classmethod
    def todays_matches(cls, date: str | None = None) -> str:
        """Build cache key for the matches played on a date.

        Args:
            date: ISO date (YYYY-MM-DD). None means the provider's today.

        Returns:
            Cache key string.
        """
        return cls._join("matches", "today", date or "current")

    @classmethod
    def live_matches(cls, limit: int | None = None) -> str:
        """Build cache key for live matches.

        Args:
            limit: Optional maximum number of matches.

        Returns:
            Cache key string.
        """
        if limit is not None:
            return cls._join("matches", "live", "limit", limit)
        return cls._join("matches", "live")

    @classmethod
    def upcoming_matches(cls, limit: int | None = None, hours: int = 48) -> str:
        """Build cache key for upcoming matches.

        Args:
            limit: Optional maximum number of matches.
            hours: Look-ahead window in hours.

        Returns:
            Cache key string.
        """
        if limit is not None:
            return cls._join("matches", "upcoming", "limit", limit, f"{hours}h")
        return cls._join("matches", "upcoming", f"{hours}h")

    @classmethod
    def match_details(cls, match_id: int) -> str:
        """Build cache key for one match's details."""
        return cls._join("match", match_id, "details")

    @classmethod
    def match_analysis(
        cls,
        match_id: int,
        *,
        include_team_stats: bool = False,
        include_player_stats: bool = False,
        include_referee_stats: bool = False,
        include_h2h: bool = False,
    ) -> str:
        """Build cache key for one match's analysis.

        Each included section is part of the key so that analyses built
        with different options never share an entry.
        """
        parts: list[object] = ["match", match_id, "analysis"]
        if include_team_stats:
            parts.append("team-stats")
        if include_player_stats:
            parts.append("player-stats")
        if include_referee_stats:
            parts.append("referee-stats")
        if include_h2h:
            parts.append("h2h")
        return cls._join(*parts)

    @classmethod
    def total_match_count(cls, date: str | None = None) -> str:
        """Build cache key for the number of matches on a date."""
        return cls._join("matches", "total-count", date or "current")

    @classmethod
    def tag_index(cls, tag: str) -> str:
        """Build the key of the remote secondary index for a tag."""
        return cls._join(cls.TAG_INDEX, tag)
