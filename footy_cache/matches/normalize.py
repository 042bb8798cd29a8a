"""Normalization of origin payloads into their canonical wire form.

One function per result type. Each accepts whatever the origin returned
and produces a JSON-compatible dict that is safe for the presentation
layer to iterate over.
"""

from typing import Any

import structlog

from footy_cache.matches.models import (
    MatchAnalysis,
    MatchDetails,
    MatchList,
    MatchPayload,
    TodaysMatches,
    TotalMatchCount,
)

logger = structlog.get_logger(__name__)


def _as_mapping(raw: Any, result_type: str) -> dict[str, Any]:
    if isinstance(raw, MatchPayload):
        return raw.to_payload()
    if isinstance(raw, dict):
        return raw
    logger.warning(
        "origin_payload_malformed",
        result_type=result_type,
        received=type(raw).__name__,
    )
    return {"success": False, "message": f"Malformed {result_type.replace('_', ' ')} payload"}


def normalize_todays_matches(raw: Any) -> dict[str, Any]:
    """Normalize a today's-matches payload."""
    return TodaysMatches.model_validate(_as_mapping(raw, "todays_matches")).to_payload()


def normalize_match_list(raw: Any) -> dict[str, Any]:
    """Normalize a live or upcoming match list.

    The origin answers these queries with either a bare list or a payload
    holding one; both become a MatchList. A missing count is the length
    of the list.
    """
    if isinstance(raw, list | tuple):
        payload: dict[str, Any] = {"matches": list(raw)}
    else:
        payload = dict(_as_mapping(raw, "match_list"))

    result = MatchList.model_validate(payload)
    if "count" not in payload:
        result.count = len(result.matches)
    return result.to_payload()


def normalize_match_details(raw: Any) -> dict[str, Any]:
    """Normalize a match-details payload."""
    result = MatchDetails.model_validate(_as_mapping(raw, "match_details"))
    if result.success and not result.data.h2h_matches:
        logger.debug("h2h_matches_empty", match_details=result.data.match_details is not None)
    return result.to_payload()


def normalize_match_analysis(raw: Any) -> dict[str, Any]:
    """Normalize a match-analysis payload."""
    return MatchAnalysis.model_validate(_as_mapping(raw, "match_analysis")).to_payload()


def normalize_total_match_count(raw: Any) -> dict[str, Any]:
    """Normalize a total-match-count payload.

    A bare number is accepted as the count.
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        return TotalMatchCount(total_matches=raw).to_payload()
    return TotalMatchCount.model_validate(_as_mapping(raw, "total_match_count")).to_payload()


def match_status(payload: dict[str, Any]) -> str | None:
    """Extract the match status from a normalized match-details payload."""
    return MatchDetails.model_validate(payload).status
