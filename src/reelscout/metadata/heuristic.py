"""Filename heuristics for extracting movie and TV episode hints.

Both parsers are total: any input yields a hint, falling back to a cleaned
title when no year or episode pattern is found.

Supported movie layouts:
- "The Matrix (1999).mkv", "The Matrix [1999].mkv"
- "The.Matrix.1999.1080p.BluRay.mkv", "The-Matrix-1999.mkv"

Supported episode layouts:
- "Show.Name.S01E03.mkv", "Show Name S1E3.mkv", "Show.S01E103.mkv"
- "Show.Name.S01E03-E04.mkv", "Show.Name.S01E03-04.mkv", "Show.Name.S01E03E04.mkv"
- "Show.Name.1x03.mkv"
- "Show Name Season 1 Episode 3.mkv"
"""

import re
from datetime import date
from typing import Callable, Optional

from reelscout.models.hints import EpisodeHint, MovieHint
from reelscout.utils.logger import get_logger

logger = get_logger(__name__)

VIDEO_EXTENSIONS = ("mkv", "mp4", "m4v", "mov", "avi", "wmv", "flv", "webm", "ts", "m2ts")

# Ordered (pattern, label) pairs; the first substring match wins
QUALITY_PATTERNS: tuple[tuple[str, str], ...] = (
    ("4K", "4K"),
    ("2160p", "4K"),
    ("UHD", "4K"),
    ("1080p", "1080p"),
    ("720p", "720p"),
    ("480p", "480p"),
    ("HDTV", "HDTV"),
    ("BluRay", "BluRay"),
    ("BDRip", "BDRip"),
    ("DVDRip", "DVDRip"),
    ("WEBRip", "WEBRip"),
    ("WEBDL", "WEB-DL"),
    ("WEB-DL", "WEB-DL"),
)

_QUALITY_TOKENS = frozenset(pattern.lower() for pattern, _ in QUALITY_PATTERNS)

_COMMON_STOP_WORDS = frozenset(
    {
        "bluray", "bdrip", "brrip", "dvdrip", "webrip", "webdl", "web-dl",
        "hdtv", "hdrip", "x264", "x265", "h264", "h265", "hevc", "avc",
        "xvid", "divx", "mkv", "avi", "mp4", "m4v", "mov",
        "1080p", "720p", "480p", "2160p", "4k", "uhd",
        "proper", "repack", "internal", "limited",
        "hdr", "hdr10", "dolby", "vision", "atmos",
        "dts", "aac", "ac3", "flac", "truehd", "dd5", "dd2",
        "multi", "dual", "audio", "subbed", "dubbed",
        "yify", "yts", "rarbg",
    }
)

MOVIE_STOP_WORDS = _COMMON_STOP_WORDS | {
    "extended", "unrated", "directors", "cut", "remastered",
    "theatrical", "imax", "3d", "sparks", "geckos", "fgt",
}

SHOW_STOP_WORDS = _COMMON_STOP_WORDS | {"ettv", "eztv", "lol", "dimension"}

MOVIE_COMPOUND_PREFIXES = frozenset({"spider", "bat", "super", "iron", "ant", "x"})
MOVIE_COMPOUND_SUFFIXES = frozenset({"man", "men", "woman", "women", "girl", "boy"})

# (prefix, suffix) pairs; an empty suffix accepts any following word
SHOW_COMPOUND_PAIRS: tuple[tuple[str, str], ...] = (
    ("star", "trek"),
    ("star", "wars"),
    ("law", "order"),
    ("spider", "man"),
    ("bat", "man"),
    ("iron", "man"),
    ("sci", "fi"),
    ("self", ""),
    ("non", ""),
)

MIN_YEAR = 1888

_YEAR_RULES = (
    # (pattern, title ends at) - "match" cuts at the whole match, "group" just before the year
    (re.compile(r"\s*\((\d{4})\)"), "match"),
    (re.compile(r"\s*\[(\d{4})\]"), "match"),
    (re.compile(r"[.\s_-](\d{4})[.\s_-]"), "group"),
    (re.compile(r"[.\s_-](\d{4})$"), "group"),
)

_MULTI_EPISODE_DASH = re.compile(
    r"(.+?)[.\s_-][Ss](\d{1,2})[Ee](\d{1,3})-[Ee]?(\d{1,3})(?![0-9])"
)
_MULTI_EPISODE_CONSECUTIVE = re.compile(
    r"(.+?)[.\s_-][Ss](\d{1,2})[Ee](\d{1,3})[Ee](\d{1,3})(?![0-9])"
)
_STANDARD_EPISODE = re.compile(r"(.+?)[.\s_-][Ss](\d{1,2})[Ee](\d{1,3})(?![0-9])")
_ALTERNATE_EPISODE = re.compile(r"(.+?)[.\s_-](\d{1,2})x(\d{1,3})(?![0-9])")
_VERBOSE_EPISODE = re.compile(
    r"(.+?)[.\s_-]Season[.\s_-]?(\d{1,2})[.\s_-]Episode[.\s_-]?(\d{1,3})",
    re.IGNORECASE,
)


def parse_movie(filename: str) -> MovieHint:
    """Parse a movie filename into title, year and quality.

    Args:
        filename: Filename to parse (extension optional)

    Returns:
        MovieHint; year is None when no valid year was found
    """
    name = strip_extension(filename)
    quality = extract_quality(name)
    raw_title, year = _extract_title_and_year(name)
    title = _clean_title(raw_title, MOVIE_STOP_WORDS, _is_movie_compound) or _fallback_title(name)

    hint = MovieHint(title=title, year=year, quality=quality)
    logger.debug("Parsed movie filename", filename=filename, title=title, year=year, quality=quality)
    return hint


def parse_show(filename: str) -> EpisodeHint:
    """Parse a TV episode filename into show name, season and episode.

    Multi-episode patterns are tried before the standard pattern, which
    would otherwise match only the first half of "S01E03-E04".

    Args:
        filename: Filename to parse (extension optional)

    Returns:
        EpisodeHint; is_valid is False when no episode pattern matched
    """
    name = strip_extension(filename)
    quality = extract_quality(name)

    for pattern in (_MULTI_EPISODE_DASH, _MULTI_EPISODE_CONSECUTIVE):
        if match := pattern.search(name):
            return _episode_hint(filename, match, quality, multi=True)

    for pattern in (_STANDARD_EPISODE, _ALTERNATE_EPISODE, _VERBOSE_EPISODE):
        if match := pattern.search(name):
            return _episode_hint(filename, match, quality, multi=False)

    show_name = _clean_title(name, SHOW_STOP_WORDS, _is_show_compound) or _fallback_title(name)
    logger.debug("No episode pattern in filename", filename=filename, show_name=show_name)
    return EpisodeHint(show_name=show_name, quality=quality)


def is_tv_show(filename: str) -> bool:
    """Check whether a filename carries a season/episode marker."""
    return parse_show(filename).is_valid


def is_valid_year(year: int) -> bool:
    """Check a year lies between the first film and five years from now."""
    return MIN_YEAR <= year <= date.today().year + 5


def strip_extension(filename: str) -> str:
    """Remove a known video extension (case-insensitive), if present."""
    lowered = filename.lower()
    for ext in VIDEO_EXTENSIONS:
        if lowered.endswith(f".{ext}"):
            return filename[: -(len(ext) + 1)]
    return filename


def extract_quality(name: str) -> Optional[str]:
    """Return the normalized label of the first quality pattern found."""
    lowered = name.lower()
    for pattern, label in QUALITY_PATTERNS:
        if pattern.lower() in lowered:
            return label
    return None


def _episode_hint(filename: str, match: re.Match, quality: Optional[str], multi: bool) -> EpisodeHint:
    hint = EpisodeHint(
        show_name=_clean_title(match.group(1), SHOW_STOP_WORDS, _is_show_compound),
        season=int(match.group(2)),
        episode=int(match.group(3)),
        episode_end=int(match.group(4)) if multi else None,
        quality=quality,
    )
    logger.debug(
        "Parsed episode filename",
        filename=filename,
        show_name=hint.show_name,
        season=hint.season,
        episode=hint.episode,
        episode_end=hint.episode_end,
    )
    return hint


def _extract_title_and_year(name: str) -> tuple[str, Optional[int]]:
    """Apply the year rules in priority order.

    Only the first occurrence of each rule is considered; a syntactic match
    with an out-of-range year falls through to the next rule.
    """
    for pattern, cut in _YEAR_RULES:
        match = pattern.search(name)
        if not match:
            continue
        year = int(match.group(1))
        if not is_valid_year(year):
            continue
        end = match.start() if cut == "match" else match.start(1) - 1
        return name[:end], year
    return name, None


def _clean_title(raw: str, stop_words: frozenset[str], is_compound: Callable[[str, str], bool]) -> str:
    """Turn a raw filename fragment into a display title.

    Dots and underscores always become spaces. Hyphens are only touched
    when the text has no spaces at all, and then only where they do not
    join a known compound word. Tokens are kept up to the first stop word
    or quality token.
    """
    text = raw.replace(".", " ").replace("_", " ")
    text = _replace_hyphen_separators(text, is_compound)

    words = []
    for word in text.split():
        lowered = word.lower()
        if lowered in stop_words or lowered in _QUALITY_TOKENS:
            break
        words.append(word)

    return " ".join(words).strip()


def _fallback_title(name: str) -> str:
    return " ".join(name.replace(".", " ").replace("_", " ").split())


def _replace_hyphen_separators(text: str, is_compound: Callable[[str, str], bool]) -> str:
    if " " in text:
        return text

    if text.count("-") >= 3:
        return text.replace("-", " ")

    chars = []
    for i, char in enumerate(text):
        if char == "-" and not is_compound(_word_before(text, i), _word_after(text, i)):
            chars.append(" ")
        else:
            chars.append(char)
    return "".join(chars)


def _word_before(text: str, index: int) -> str:
    start = index
    while start > 0 and text[start - 1].isalnum():
        start -= 1
    return text[start:index]


def _word_after(text: str, index: int) -> str:
    end = index + 1
    while end < len(text) and text[end].isalnum():
        end += 1
    return text[index + 1 : end]


def _is_single_capital(word: str) -> bool:
    # "X-Men", "T-Rex", "X-Files"
    return len(word) == 1 and word.isupper()


def _is_movie_compound(prev: str, next_: str) -> bool:
    if not prev or not next_:
        return False
    if prev.lower() in MOVIE_COMPOUND_PREFIXES and next_.lower() in MOVIE_COMPOUND_SUFFIXES:
        return True
    return _is_single_capital(prev)


def _is_show_compound(prev: str, next_: str) -> bool:
    if not prev or not next_:
        return False
    if _is_single_capital(prev):
        return True
    prev_lower, next_lower = prev.lower(), next_.lower()
    return any(
        prev_lower == prefix and (not suffix or next_lower == suffix)
        for prefix, suffix in SHOW_COMPOUND_PAIRS
    )
