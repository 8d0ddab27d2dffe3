"""
Pharmacy Finder — Fuzzy Name Matching

Decides whether two pharmacy names denote the same storefront. Names are
first reduced to their identifying words (legal forms such as "Inc" or
"Ltée" and generic words such as "Pharmacy" or "Drug Mart" are removed),
then compared with a weighted blend of three rapidfuzz scores.

The merge pipeline uses `matches_known_name` to keep MedMe-branded
listings from appearing a second time via the bulk country datasets.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Callable, Iterable

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein


# ---------------------------------------------------------------------------
# Normalisation tables
# ---------------------------------------------------------------------------

# Legal forms (US, Canada incl. Quebec)
_LEGAL_FORMS = (
    "ltd", "limited", "llc", "ltée", "inc", "incorporated",
    "corp", "corporation", "company", "co", "group", "and",
)

# Generic retail words; "drug store" also matches "drugstore"
_GENERIC_WORDS = (
    "pharmacy", "pharmacies", "pharmacie", "pharmacist",
    "drug mart", "drug store", "drug stores", "drugs",
    "apothecary", "chemist", "chemists", "rx", "clinic", "store", "stores",
)

_ABBREVIATIONS: dict[str, str] = {
    "st": "saint",
    "ste": "sainte",
    "mt": "mount",
    "ft": "fort",
    "dr": "doctor",
    "pharm": "pharmacy",
}


def _word_pattern(words: Iterable[str]) -> re.Pattern:
    # Longest first so "drug stores" wins over "drug store"
    alternatives = sorted(words, key=len, reverse=True)
    body = "|".join(re.escape(w).replace(r"\ ", r"\s*") for w in alternatives)
    return re.compile(rf"\b(?:{body})\b", re.IGNORECASE)


_NOISE_RE = _word_pattern(_LEGAL_FORMS + _GENERIC_WORDS)
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_MULTI_SPACE = re.compile(r"\s+")


def normalize_name(name: str | None) -> str:
    """
    Reduce a pharmacy name to its identifying words.

    "St. Mary's Pharmacy Inc." → "saint mary s". Abbreviations are
    expanded before noise removal (so "Pharm." is stripped too), and noise
    removal runs before accent folding so "Ltée" is still recognised.
    """
    if not name:
        return ""

    tokens = name.lower().split()
    text = " ".join(_ABBREVIATIONS.get(t.rstrip("."), t) for t in tokens)
    text = _NOISE_RE.sub(" ", text)

    text = "".join(
        c for c in unicodedata.normalize("NFKD", text) if not unicodedata.combining(c)
    )
    text = _NON_ALNUM.sub(" ", text)
    return _MULTI_SPACE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# Scores (all in [0.0, 1.0])
# ---------------------------------------------------------------------------


def _guarded(scorer: Callable[[str, str], float], a: str, b: str) -> float:
    # Two empty names are identical; one empty name matches nothing
    if not a or not b:
        return 1.0 if a == b else 0.0
    return scorer(a, b)


def levenshtein_similarity(a: str, b: str) -> float:
    """1 - edit distance / longer length."""
    return _guarded(Levenshtein.normalized_similarity, a, b)


def token_sort_similarity(a: str, b: str) -> float:
    """Word-order insensitive ratio ("olympic care" == "care olympic")."""
    return _guarded(lambda x, y: fuzz.token_sort_ratio(x, y) / 100.0, a, b)


def token_set_similarity(a: str, b: str) -> float:
    """Ratio that forgives extra words on one side ("olympic care downtown")."""
    return _guarded(lambda x, y: fuzz.token_set_ratio(x, y) / 100.0, a, b)


def compute_name_similarity(
    name_a: str,
    name_b: str,
    *,
    levenshtein_weight: float = 0.35,
    token_sort_weight: float = 0.40,
    token_set_weight: float = 0.25,
) -> dict[str, float | str]:
    """
    Compare two raw names.

    Returns the normalised forms, the three component scores and their
    weighted `composite`, each rounded to 4 places.
    """
    norm_a = normalize_name(name_a)
    norm_b = normalize_name(name_b)

    scores = {
        "levenshtein": levenshtein_similarity(norm_a, norm_b),
        "token_sort": token_sort_similarity(norm_a, norm_b),
        "token_set": token_set_similarity(norm_a, norm_b),
    }
    composite = (
        levenshtein_weight * scores["levenshtein"]
        + token_sort_weight * scores["token_sort"]
        + token_set_weight * scores["token_set"]
    )

    result: dict[str, float | str] = {"name_a_normalized": norm_a, "name_b_normalized": norm_b}
    result.update({k: round(v, 4) for k, v in scores.items()})
    result["composite"] = round(composite, 4)
    return result


def quick_name_score(name_a: str, name_b: str) -> float:
    return compute_name_similarity(name_a, name_b)["composite"]


def names_are_similar(name_a: str, name_b: str, threshold: float = 0.70) -> bool:
    return quick_name_score(name_a, name_b) >= threshold


def matches_known_name(
    name: str | None,
    known_names: Iterable[str],
    threshold: float = 0.95,
) -> bool:
    """
    True if `name` is one of `known_names` after normalisation, or scores
    at least `threshold` against one. A name that normalises to nothing
    (just "Pharmacy", say) never matches.
    """
    norm = normalize_name(name)
    if not norm:
        return False
    for known in known_names:
        known_norm = normalize_name(known)
        if known_norm and (norm == known_norm or quick_name_score(norm, known_norm) >= threshold):
            return True
    return False
