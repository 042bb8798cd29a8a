"""Canonical match-data payloads.

Every payload served from the cache goes through one of these models
first. Sequence fields the presentation layer iterates over are coerced to
``[]`` when the origin omitted them or sent something that is not a list,
and origin fields the models do not name are preserved as-is.

Field names on the wire are camelCase (``h2hMatches``, ``totalMatches``),
matching what the origin sends and what clients expect.
"""

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_list(value: Any) -> list[Any]:
    """Coerce a value to a list; anything that is not a sequence becomes []."""
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []


def as_count(value: Any) -> int:
    """Coerce a value to a non-negative count; junk becomes 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        return max(0, int(value)) if math.isfinite(value) else 0
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


class MatchPayload(BaseModel):
    """Base of every canonical payload.

    Attributes:
        success: Whether the origin produced the data.
        message: Human-readable reason when success is False.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    success: bool = True
    message: str | None = None

    @field_validator("success", mode="before")
    @classmethod
    def parse_success(cls, v: Any) -> bool:
        """Treat a null flag as success and parse string flags."""
        if v is None:
            return True
        if isinstance(v, str):
            return v.strip().lower() not in ("false", "0", "no", "")
        return bool(v)

    @field_validator("message", mode="before")
    @classmethod
    def parse_message(cls, v: Any) -> str | None:
        """Stringify a non-string message."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @classmethod
    def failed(cls, message: str) -> "MatchPayload":
        """Structurally valid payload for an origin failure."""
        return cls(success=False, message=message)

    def to_payload(self) -> dict[str, Any]:
        """Dump to the JSON-compatible wire form."""
        return self.model_dump(mode="json", by_alias=True)


class TodaysMatches(MatchPayload):
    """Matches played on one date."""

    matches: list[Any] = Field(default_factory=list)
    selected_match: Any = Field(default=None, alias="selectedMatch")
    total_matches: int = Field(default=0, alias="totalMatches")

    @field_validator("matches", mode="before")
    @classmethod
    def parse_matches(cls, v: Any) -> list[Any]:
        """Coerce the match list."""
        return as_list(v)

    @field_validator("total_matches", mode="before")
    @classmethod
    def parse_total(cls, v: Any) -> int:
        """Coerce the match count."""
        return as_count(v)


class MatchList(MatchPayload):
    """Live or upcoming matches."""

    matches: list[Any] = Field(default_factory=list)
    count: int = 0

    @field_validator("matches", mode="before")
    @classmethod
    def parse_matches(cls, v: Any) -> list[Any]:
        """Coerce the match list."""
        return as_list(v)

    @field_validator("count", mode="before")
    @classmethod
    def parse_count(cls, v: Any) -> int:
        """Coerce the match count."""
        return as_count(v)


class MatchDetailsData(BaseModel):
    """Body of a match-details payload."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    match_details: Any = Field(default=None, alias="matchDetails")
    h2h_matches: list[Any] = Field(default_factory=list, alias="h2hMatches")
    team_stats: list[Any] = Field(default_factory=list, alias="teamStats")
    recent_matches: list[Any] = Field(default_factory=list, alias="recentMatches")

    @field_validator("h2h_matches", "team_stats", "recent_matches", mode="before")
    @classmethod
    def parse_sequences(cls, v: Any) -> list[Any]:
        """Coerce sequence fields the origin may omit or mangle."""
        return as_list(v)


class MatchDetails(MatchPayload):
    """One match with head-to-head history and team statistics."""

    data: MatchDetailsData = Field(default_factory=MatchDetailsData)

    @field_validator("data", mode="before")
    @classmethod
    def parse_data(cls, v: Any) -> Any:
        """Replace a missing body with an empty one."""
        if isinstance(v, dict | MatchDetailsData):
            return v
        return {}

    @property
    def status(self) -> str | None:
        """Match status reported by the origin, if any."""
        details = self.data.match_details
        if isinstance(details, dict):
            status = details.get("status")
            if isinstance(status, str) and status.strip():
                return status
        return None


class TeamStats(BaseModel):
    """Per-team section of a match analysis."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    recent_matches: list[Any] = Field(default_factory=list, alias="recentMatches")

    @field_validator("recent_matches", mode="before")
    @classmethod
    def parse_recent_matches(cls, v: Any) -> list[Any]:
        """Coerce the recent match list."""
        return as_list(v)


class MatchAnalysisData(BaseModel):
    """Body of a match-analysis payload."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    match_details: Any = Field(default=None, alias="matchDetails")
    h2h_matches: list[Any] = Field(default_factory=list, alias="h2hMatches")
    home_team_stats: TeamStats = Field(default_factory=TeamStats, alias="homeTeamStats")
    away_team_stats: TeamStats = Field(default_factory=TeamStats, alias="awayTeamStats")
    predictions: list[Any] = Field(default_factory=list)

    @field_validator("h2h_matches", "predictions", mode="before")
    @classmethod
    def parse_sequences(cls, v: Any) -> list[Any]:
        """Coerce sequence fields the origin may omit or mangle."""
        return as_list(v)

    @field_validator("home_team_stats", "away_team_stats", mode="before")
    @classmethod
    def parse_team_stats(cls, v: Any) -> Any:
        """Replace a missing team section with an empty one."""
        if isinstance(v, dict | TeamStats):
            return v
        return {}


class MatchAnalysis(MatchPayload):
    """Analysis of one match."""

    data: MatchAnalysisData = Field(default_factory=MatchAnalysisData)

    @field_validator("data", mode="before")
    @classmethod
    def parse_data(cls, v: Any) -> Any:
        """Replace a missing body with an empty one."""
        if isinstance(v, dict | MatchAnalysisData):
            return v
        return {}


class TotalMatchCount(MatchPayload):
    """Number of matches on one date."""

    total_matches: int = Field(default=0, alias="totalMatches")

    @field_validator("total_matches", mode="before")
    @classmethod
    def parse_total(cls, v: Any) -> int:
        """Coerce the match count."""
        return as_count(v)


class MatchAnalysisOptions(BaseModel):
    """Which sections to include in a match analysis.

    Attributes:
        match_id: Match to analyse.
        include_team_stats: Include per-team form and statistics.
        include_player_stats: Include player statistics.
        include_referee_stats: Include referee statistics.
        include_h2h: Include head-to-head history.
        range: Number of recent matches the statistics cover.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    match_id: int = Field(..., alias="matchId")
    include_team_stats: bool = Field(default=False, alias="includeTeamStats")
    include_player_stats: bool = Field(default=False, alias="includePlayerStats")
    include_referee_stats: bool = Field(default=False, alias="includeRefereeStats")
    include_h2h: bool = Field(default=False, alias="includeH2H")
    range: Literal[5, 10] = 10
