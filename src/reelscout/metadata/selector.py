"""Best-match selection over remote search candidates."""

from typing import Optional, Sequence

from reelscout.models.hints import EpisodeHint, MovieHint
from reelscout.models.tmdb import SearchCandidate, ShowCandidate
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)

YEAR_TOLERANCE = 1


def select_movie(
    candidates: Sequence[SearchCandidate],
    hint: MovieHint,
) -> Optional[SearchCandidate]:
    """Select the best movie candidate for a parsed filename.

    Selection logic:
    1. If the hint has a year, the first candidate released that year
    2. Else the first candidate released within one year of it
    3. Else the first candidate (the remote search is already ranked)

    Args:
        candidates: Search results in relevance order
        hint: Parsed filename hint

    Returns:
        Selected candidate, or None only when there are no candidates
    """
    if not candidates:
        return None

    if hint.year is not None:
        for candidate in candidates:
            if candidate.release_year == hint.year:
                logger.debug(
                    "Selected exact year match",
                    catalog_id=candidate.id,
                    year=hint.year,
                )
                return candidate

        for candidate in candidates:
            if (
                candidate.release_year is not None
                and abs(candidate.release_year - hint.year) <= YEAR_TOLERANCE
            ):
                logger.debug(
                    "Selected near year match",
                    catalog_id=candidate.id,
                    year=candidate.release_year,
                    wanted=hint.year,
                )
                return candidate

    return candidates[0]


def select_show(
    candidates: Sequence[ShowCandidate],
    hint: EpisodeHint,
) -> Optional[ShowCandidate]:
    """Select the show whose normalized name equals the parsed show name.

    Falls back to the first candidate when no name matches exactly.

    Args:
        candidates: Search results in relevance order
        hint: Parsed filename hint

    Returns:
        Selected candidate, or None only when there are no candidates
    """
    if not candidates:
        return None

    wanted = normalize_name(hint.show_name)
    for candidate in candidates:
        if normalize_name(candidate.name) == wanted:
            logger.debug("Selected exact name match", catalog_id=candidate.id, name=candidate.name)
            return candidate

    return candidates[0]


def normalize_name(name: str) -> str:
    """Lowercase a name and turn "-" and "." into spaces."""
    return name.lower().replace("-", " ").replace(".", " ").strip()
