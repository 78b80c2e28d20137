"""Name similarity tuned for Ghanaian ledger names.

Handwritten tithe-book names differ from the member database in predictable
ways: honorifics come and go, Akan day names are spelled several ways
(Kofi / Fiifi), compound surnames are split or joined, and transliteration
drifts (Mensah / Mensa). The scorer compares names token by token and credits
each of those variations with a fixed weight.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgermatch.matching.types import IdentityRecord


TITLES = frozenset(
    {
        "elder", "deacon", "deaconess", "pastor", "apostle", "prophet", "prophetess",
        "evangelist", "reverend", "rev", "bishop", "overseer",
        "nii", "naa", "nana", "maame", "mama", "papa", "opanyin", "obaapanyin",
        "togbe", "torgbe", "nene", "dr", "prof", "mrs", "mr", "miss", "ms",
    }
)

DAY_NAMES: dict[str, dict[str, tuple[str, ...]]] = {
    "sunday": {
        "male": ("kwasi", "kwesi", "akwasi", "kosi"),
        "female": ("akosua", "esi", "kosi"),
    },
    "monday": {
        "male": ("kwadwo", "kojo", "kodwo", "cudjoe"),
        "female": ("adwoa", "adjoa", "ajua"),
    },
    "tuesday": {
        "male": ("kwabena", "kobina", "kobena", "ebo"),
        "female": ("abena", "araba", "abenaa"),
    },
    "wednesday": {
        "male": ("kwaku", "kweku", "kuuku"),
        "female": ("akua", "ekua", "kukua"),
    },
    "thursday": {
        "male": ("yaw", "ekow", "yawo"),
        "female": ("yaa", "aba", "yaaba"),
    },
    "friday": {
        "male": ("kofi", "fiifi"),
        "female": ("afua", "efua", "afi"),
    },
    "saturday": {
        "male": ("kwame", "kwami", "kwamena"),
        "female": ("ama", "amma", "amoah"),
    },
}

EXACT_WEIGHT = 1.0
DAY_NAME_WEIGHT = 0.9
PHONETIC_WEIGHT = 0.85
PREFIX_WEIGHT = 0.7
_PREFIX_MIN_LENGTH = 4

_TOKEN_SPLIT_RE = re.compile(r"[\s.,]+")
_DIGRAPHS: tuple[tuple[str, str], ...] = (
    ("dw", "d"),
    ("tw", "t"),
    ("gy", "j"),
    ("ey", "e"),
    ("ny", "n"),
    ("kw", "k"),
    ("oo", "o"),
    ("ee", "e"),
    ("aa", "a"),
    ("ii", "i"),
    ("uu", "u"),
)
_SOUNDEX_CODES = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}
_PHONETIC_LENGTH = 5

_DAY_BY_NAME: dict[str, str] = {
    name: day
    for day, variants in DAY_NAMES.items()
    for name in (*variants["male"], *variants["female"])
}


def strip_titles(name: str) -> str:
    """Drop honorific and traditional titles from a name."""

    words = name.lower().split()
    return " ".join(word for word in words if word.strip(".") not in TITLES)


def tokenize_name(name: str) -> list[str]:
    """Lowercase, title-free name tokens split on whitespace, periods and commas."""

    if not name:
        return []
    tokens = [token for token in _TOKEN_SPLIT_RE.split(name.lower()) if token]
    return [token for token in tokens if token not in TITLES]


def normalize_name(name: str) -> str:
    return " ".join(tokenize_name(name))


def are_day_name_variants(left: str, right: str) -> bool:
    """True when both tokens are day names for the same weekday."""

    left_day = _DAY_BY_NAME.get(left.strip().lower())
    return left_day is not None and left_day == _DAY_BY_NAME.get(right.strip().lower())


def phonetic_code(token: str) -> str:
    """Soundex-style code (first letter + 4 digits) after folding local digraphs."""

    folded = token.strip().lower()
    if not folded:
        return ""
    for digraph, replacement in _DIGRAPHS:
        folded = folded.replace(digraph, replacement)

    code = folded[0].upper()
    last = _SOUNDEX_CODES.get(folded[0], "")
    for char in folded[1:]:
        if len(code) == _PHONETIC_LENGTH:
            break
        digit = _SOUNDEX_CODES.get(char, "")
        if digit and digit != last:
            code += digit
            last = digit
        elif not digit:
            last = ""
    return code.ljust(_PHONETIC_LENGTH, "0")


def are_phonetically_similar(left: str, right: str) -> bool:
    left_code = phonetic_code(left)
    right_code = phonetic_code(right)
    if not left_code or not right_code:
        return False
    return left_code == right_code or left_code[:4] == right_code[:4]


def _is_prefix_match(left: str, right: str) -> bool:
    if len(left) < _PREFIX_MIN_LENGTH or len(right) < _PREFIX_MIN_LENGTH:
        return False
    return left.startswith(right) or right.startswith(left)


_TIERS = (
    (EXACT_WEIGHT, lambda left, right: left == right),
    (DAY_NAME_WEIGHT, are_day_name_variants),
    (PHONETIC_WEIGHT, are_phonetically_similar),
    (PREFIX_WEIGHT, _is_prefix_match),
)


def similarity(left: str, right: str) -> float:
    """Return a similarity score in [0, 1] between two names."""

    left_tokens = tokenize_name(left or "")
    right_tokens = tokenize_name(right or "")
    if not left_tokens or not right_tokens:
        return 0.0
    if left_tokens == right_tokens:
        return 1.0

    shorter, longer = left_tokens, right_tokens
    if len(right_tokens) < len(left_tokens):
        shorter, longer = right_tokens, left_tokens

    used: set[int] = set()
    total = 0.0
    for token in shorter:
        if len(token) == 1:
            continue
        for weight, predicate in _TIERS:
            index = _first_unused_match(token, longer, used, predicate)
            if index is not None:
                used.add(index)
                total += weight
                break

    return min(1.0, total / max(len(left_tokens), len(right_tokens)))


def _first_unused_match(token, candidates, used, predicate) -> int | None:
    for index, other in enumerate(candidates):
        if index in used or len(other) == 1:
            continue
        if predicate(token, other):
            return index
    return None


def best_name_similarity(text: str, record: IdentityRecord) -> float:
    """Highest similarity between a raw name and any ordering of a record's name."""

    variants = record.name_variants()
    if not variants:
        return 0.0
    return max(similarity(text, variant) for variant in variants)
