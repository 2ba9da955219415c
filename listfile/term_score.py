"""Casing heuristics for archive path terms.

Archive indexes frequently store names in ALL CAPS or all lower case, which
loses the original casing. `guess` proposes a canonical casing without any
dictionary knowledge and `calculate` turns the distance between a term and
that proposal into a confidence score. Both are pure and deterministic.
"""
from __future__ import annotations

import re

# Reserved "resolved, do not re-review" marker. calculate() only ever returns
# values in [0, 1], so a human-confirmed entry can never collide with a
# heuristic one, and it stays out of any finite low-score tolerance.
RESOLVED_SCORE = float("inf")

MAX_HEURISTIC_SCORE = 1.0
LOWERCASE_SCORE_CEILING = 0.5

_LETTER_RUN = re.compile(r"[^\W\d_]+")
# Short trailing alphabetic suffix after the last dot, e.g. ".BLP", ".M2"
_EXTENSION = re.compile(r"^(?P<stem>.+)\.(?P<ext>[^\W_][^\W_]{0,3})$")


def _recase(ch: str, upper: bool) -> str:
    """Change the case of a single character without changing its identity."""
    changed = ch.upper() if upper else ch.lower()
    if len(changed) != 1 or changed.upper() != ch.upper():
        return ch
    return changed


def _title_run(match: re.Match) -> str:
    run = match.group(0)
    return _recase(run[0], True) + "".join(_recase(c, False) for c in run[1:])


def is_mixed_case(term: str) -> bool:
    return any(c.isupper() for c in term) and any(c.islower() for c in term)


def guess(term: str) -> str:
    """Best-effort canonical casing of a single term.

    Mixed-case terms already carry casing information and pass through. Terms
    in a single case are split into letter runs at digits, punctuation and
    separators, and each run is title-cased. A short trailing file extension
    is lower-cased. Only letter case is ever changed.

    >>> guess("BARBAZ.BLP")
    'Barbaz.blp'
    >>> guess("AZEROTH_32_48.ADT")
    'Azeroth_32_48.adt'
    >>> guess("BlackTemple")
    'BlackTemple'
    """
    if not term or is_mixed_case(term) or not any(c.isalpha() for c in term):
        return term
    m = _EXTENSION.match(term)
    if m and any(c.isalpha() for c in m.group("stem")):
        stem = _LETTER_RUN.sub(_title_run, m.group("stem"))
        ext = "".join(_recase(c, False) for c in m.group("ext"))
        return f"{stem}.{ext}"
    return _LETTER_RUN.sub(_title_run, term)


def calculate(term: str) -> float:
    """Initial confidence score for an observed term.

    1.0 when the heuristic would leave the term untouched, 0.0 for ALL CAPS
    terms it would change, and at most 0.5 for all lower-case terms, scaled by
    how many letters already agree with the guess.
    """
    guessed = guess(term)
    if guessed == term:
        return MAX_HEURISTIC_SCORE
    if not any(c.islower() for c in term):
        return 0.0
    letters = [(a, b) for a, b in zip(term, guessed) if a.isalpha()]
    agree = sum(1 for a, b in letters if a == b)
    return LOWERCASE_SCORE_CEILING * agree / len(letters)
