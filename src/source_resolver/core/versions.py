import logging
from collections.abc import Sequence

from source_resolver.core.errors import LookupFailure, ValidationFailure
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import VersionValidation

logger = logging.getLogger(__name__)

_EXACT_MATCH_SCORE = 10


def _parse_segment(segment: str) -> int | None:
    try:
        return int(segment)
    except ValueError:
        return None


def version_similarity(reported: str, candidate: str) -> int:
    """Score how close ``candidate`` is to ``reported``, segment by segment.

    Positional, not semver-aware: each shared index adds 10 on an exact match,
    otherwise ``max(0, 10 - |difference|)``. An index where either segment is not
    an integer adds nothing, and so do trailing segments only one side has.
    """
    reported_parts = [_parse_segment(s) for s in reported.split(".")]
    candidate_parts = [_parse_segment(s) for s in candidate.split(".")]

    score = 0
    for a, b in zip(reported_parts, candidate_parts):
        if a is None or b is None:
            continue
        if a == b:
            score += _EXACT_MATCH_SCORE
        else:
            score += max(0, _EXACT_MATCH_SCORE - abs(a - b))
    return score


def suggest_version(reported: str, available: Sequence[str]) -> str | None:
    """Return the highest-scoring available version; ties keep the earliest one."""
    best: str | None = None
    best_score = -1
    for candidate in available:
        score = version_similarity(reported, candidate)
        if score > best_score:
            best = candidate
            best_score = score
    return best


async def validate_version(store: AssociationStore, project_id: str, reported_version: str) -> VersionValidation:
    """Check whether source exists for ``reported_version`` and suggest an alternative if not.

    Store failures are absorbed: the result is then invalid with no available versions.
    """
    if not project_id:
        raise ValidationFailure("Project id must not be empty.")

    try:
        versions = await store.list_source_versions(project_id)
    except LookupFailure as exc:
        logger.warning("Could not list source versions for project %s: %s", project_id, exc)
        return VersionValidation(is_valid=False, available_versions=[])

    available = [v.version for v in versions]
    is_valid = reported_version in available

    suggested: str | None = None
    if not is_valid and available:
        suggested = suggest_version(reported_version, available)

    return VersionValidation(is_valid=is_valid, available_versions=available, suggested_version=suggested)
