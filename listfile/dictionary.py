"""Term dictionary: canonical casing for every term seen in archive paths.

Entries are keyed by the upper-case form of the term (the TermKey). The only
way to create an entry is `update_term_entry`, which derives the key from the
term; scores only change through `update_term_entry`, `set_term_score` and
`confirm_term`, so the key/term invariant holds everywhere.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from listfile import term_score
from listfile.codec import BinaryReader, BinaryWriter, ListfileFormatError
from listfile.tokens import join_path, split_path, split_words

_log = logging.getLogger(__name__)

DICTIONARY_MAGIC = b"LDIC"
DICTIONARY_VERSION = 1


def term_key(term: str) -> str:
    return term.upper()


class DictionaryEntry:
    """A canonical term and the confidence in its casing."""

    __slots__ = ("_term", "_score")

    def __init__(self, term: str, score: float) -> None:
        self._term = term
        self._score = float(score)

    @property
    def term(self) -> str:
        return self._term

    @property
    def score(self) -> float:
        return self._score

    @property
    def is_resolved(self) -> bool:
        return self._score == term_score.RESOLVED_SCORE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DictionaryEntry):
            return NotImplemented
        return self._term == other._term and self._score == other._score

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"<DictionaryEntry {self._term!r} score={self._score}>"


class ListfileDictionary:
    """Mapping of TermKey -> DictionaryEntry with persistence to a .dic blob."""

    EXTENSION = "dic"

    def __init__(self) -> None:
        self._entries: Dict[str, DictionaryEntry] = {}

    # -- inspection -------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, term: object) -> bool:
        return isinstance(term, str) and self.contains_term(term)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self) -> Iterable[Tuple[str, DictionaryEntry]]:
        return self._entries.items()

    def get(self, term: str) -> Optional[DictionaryEntry]:
        return self._entries.get(term_key(term))

    def contains_term(self, term: str) -> bool:
        return term_key(term) in self._entries

    def low_score_entries(self, tolerance: float) -> List[Tuple[str, DictionaryEntry]]:
        """Entries scoring strictly below `tolerance`, in insertion order."""
        return [(k, e) for k, e in self._entries.items() if e.score < tolerance]

    def high_score_entries(self, tolerance: float) -> List[Tuple[str, DictionaryEntry]]:
        return [(k, e) for k, e in self._entries.items() if not e.score < tolerance]

    # -- mutation ---------------------------------------------------------

    def update_term_entry(self, term: str) -> bool:
        """Record an observation of `term`. Returns True if the dictionary changed.

        Unseen keys are inserted with the heuristic score. A seen key is only
        replaced by an observation that scores strictly higher, so scores
        never decrease and resolved entries are never overwritten.
        """
        key = term_key(term)
        score = term_score.calculate(term)
        existing = self._entries.get(key)
        if existing is None:
            self._entries[key] = DictionaryEntry(term, score)
            _log.debug("new term %r (score %.3f)", term, score)
            return True
        if score <= existing.score:
            return False
        _log.debug("term %r improved to %r (%.3f -> %.3f)", existing.term, term, existing.score, score)
        self._entries[key] = DictionaryEntry(term, score)
        return True

    def set_term_score(self, term: str, score: float) -> bool:
        key = term_key(term)
        existing = self._entries.get(key)
        if existing is None or existing.score == score:
            return False
        self._entries[key] = DictionaryEntry(existing.term, score)
        return True

    def confirm_term(self, term: str) -> bool:
        """Adopt `term` as the canonical casing of its key and mark it resolved."""
        key = term_key(term)
        if key not in self._entries:
            return False
        self._entries[key] = DictionaryEntry(term, term_score.RESOLVED_SCORE)
        _log.debug("confirmed %r", term)
        return True

    def add_new_term_words(self, term: str) -> int:
        """Back-fill the words of a confirmed compound term. Returns the number of changes."""
        changed = 0
        for word in split_words(term):
            if self.update_term_entry(word):
                changed += 1
        return changed

    def delete_term(self, term: str) -> bool:
        return self._entries.pop(term_key(term), None) is not None

    # -- lookup -----------------------------------------------------------

    def guess(self, term: str) -> str:
        """Canonical casing of `term` if its key is known, else `term` unchanged."""
        entry = self._entries.get(term_key(term))
        return entry.term if entry is not None else term

    def optimize_path(self, path: str) -> str:
        return join_path([self.guess(part) for part in split_path(path)])

    def optimize_list(self, paths: Iterable[str]) -> List[str]:
        """Rewrite every component of every path with its canonical casing."""
        return [self.optimize_path(p) for p in paths]

    # -- persistence ------------------------------------------------------

    def serialize(self) -> bytes:
        w = BinaryWriter()
        w.magic(DICTIONARY_MAGIC)
        w.u32(DICTIONARY_VERSION)
        w.u64(len(self._entries))
        for key, entry in self._entries.items():
            w.text(key)
            w.text(entry.term)
            w.f64(entry.score)
        return w.getvalue()

    @classmethod
    def deserialize(cls, data: bytes) -> "ListfileDictionary":
        r = BinaryReader(data)
        r.expect_magic(DICTIONARY_MAGIC)
        version = r.u32()
        if version != DICTIONARY_VERSION:
            raise ListfileFormatError(f"unsupported dictionary version {version}")
        count = r.u64()
        d = cls()
        for _ in range(count):
            key = r.text()
            term = r.text()
            score = r.f64()
            if term_key(term) != key:
                raise ListfileFormatError(f"entry key {key!r} does not match term {term!r}")
            if key in d._entries:
                raise ListfileFormatError(f"duplicate entry key {key!r}")
            d._entries[key] = DictionaryEntry(term, score)
        r.expect_end()
        _log.info("loaded dictionary with %d entries", len(d))
        return d
