"""Upstream match-data provider interface.

The cache never talks to the sports-data API directly; it wraps any object
implementing MatchDataSource. Every method may raise on upstream failure.
"""

from typing import Any, Protocol

from footy_cache.matches.models import MatchAnalysisOptions


class MatchDataSource(Protocol):
    """Interface for the authoritative (rate-limited) match-data provider."""

    async def get_basic_match_info(self, date: str | None = None) -> dict[str, Any]:
        """Get the matches played on a date.

        Args:
            date: ISO date (YYYY-MM-DD). None means the provider's today.

        Returns:
            Raw payload with ``success``, ``matches`` and optionally
            ``selectedMatch`` and ``totalMatches``.
        """
        ...

    async def get_live_matches(self, limit: int | None = None) -> Any:
        """Get matches currently in play, as a list or a payload holding one."""
        ...

    async def get_upcoming_matches(self, limit: int | None = None, hours: int = 48) -> Any:
        """Get matches kicking off within the next ``hours`` hours."""
        ...

    async def get_detailed_match_info(self, match_id: int) -> dict[str, Any]:
        """Get one match with head-to-head history and team statistics."""
        ...

    async def get_match_analysis(self, options: MatchAnalysisOptions) -> dict[str, Any]:
        """Get the analysis for one match, sections chosen by options."""
        ...

    async def get_total_match_count(self, date: str | None = None) -> dict[str, Any]:
        """Get the number of matches on a date as ``totalMatches``."""
        ...
