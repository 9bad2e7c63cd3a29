"""Interest matching: user interest parsing and deterministic match classification.

Everything here is pure. Given the same interest text and the same matched
subset the classifier returns the same verdict, with no dependency on time,
network or configuration.

Tier rules (T = distinct user interests, M = matched interests that the user
actually typed):

    T = 0                   -> NONE    (no interests, nothing to classify)
    M = T                   -> PERFECT
    M >= ceil(0.8 * T)      -> HIGH    (M >= 2)
    M >= 3                  -> PARTIAL
    M = 2                   -> LOW
    M in {0, 1}             -> NONE
"""

import math
from fractions import Fraction
import re
from typing import Iterable

from scholar_matcher.models.analysis import MatchType, MatchVerdict


INTEREST_SEPARATORS = re.compile(r"[,;]+")
HIGH_MATCH_RATIO = Fraction(4, 5)
MIN_POSITIVE_MATCHES = 2
PARTIAL_MATCH_MINIMUM = 3


def parse_user_interests(interests_text: str | None) -> list[str]:
    """Split free-form interest text into an ordered list of distinct interests.

    Splits on commas and semicolons, trims whitespace and drops empties.
    Duplicates are detected case-insensitively; the first spelling wins.

    Example:
        >>> parse_user_interests("Medical Imaging; robotics, NLP, medical imaging")
        ['Medical Imaging', 'robotics', 'NLP']
    """
    if not interests_text:
        return []

    interests: list[str] = []
    seen: set[str] = set()
    for part in INTEREST_SEPARATORS.split(interests_text):
        interest = " ".join(part.split())
        key = interest.lower()
        if interest and key not in seen:
            seen.add(key)
            interests.append(interest)

    return interests


def normalize_matched_interests(
    user_interests: list[str], raw_matched: Iterable[str]
) -> list[str]:
    """Reduce a collaborator's matched-interest list to interests the user typed.

    Raw strings are trimmed, lowercased and deduplicated, then intersected with
    the user's interests. Anything the user never entered is dropped. The result
    uses the user's casing and order.

    Example:
        >>> normalize_matched_interests(
        ...     ["Medical Imaging", "Robotics", "NLP"],
        ...     ["robotics ", "medical imaging", "Quantum Computing"],
        ... )
        ['Medical Imaging', 'Robotics']
    """
    matched_keys = {
        " ".join(item.split()).lower()
        for item in raw_matched
        if isinstance(item, str) and item.strip()
    }

    normalized: list[str] = []
    seen: set[str] = set()
    for interest in user_interests:
        key = interest.lower()
        if key in matched_keys and key not in seen:
            seen.add(key)
            normalized.append(interest)

    return normalized


def classify(user_interests: list[str], matched_subset: Iterable[str]) -> MatchVerdict:
    """Classify how well a matched subset covers the user's interests.

    Args:
        user_interests: The user's interests (see parse_user_interests)
        matched_subset: Interests judged to be addressed by the researcher

    Returns:
        MatchVerdict with tier, match flag and the matched interests in user casing
    """
    distinct = parse_user_interests(",".join(user_interests))
    matched = normalize_matched_interests(distinct, matched_subset)

    total = len(distinct)
    count = len(matched)

    if total == 0:
        return MatchVerdict(match_type=MatchType.NONE, is_match=False, matched_interests=[])

    if count == total:
        return MatchVerdict(match_type=MatchType.PERFECT, is_match=True, matched_interests=matched)

    if count >= MIN_POSITIVE_MATCHES:
        if count >= math.ceil(HIGH_MATCH_RATIO * total):
            match_type = MatchType.HIGH
        elif count >= PARTIAL_MATCH_MINIMUM:
            match_type = MatchType.PARTIAL
        else:
            match_type = MatchType.LOW
        return MatchVerdict(match_type=match_type, is_match=True, matched_interests=matched)

    return MatchVerdict(match_type=MatchType.NONE, is_match=False, matched_interests=matched)
