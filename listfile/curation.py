"""Interactive review of low-confidence dictionary entries.

The review of a single entry is a small state machine. `step` is a pure
function of (state, operator input, dictionary) that returns the next state
and, at most, one action describing the dictionary edit to make. `render`
produces the text shown for a state. `CurationSession` walks the review queue,
applies actions and checkpoints the dictionary after every edit.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple, Union

from listfile import term_score
from listfile.dictionary import ListfileDictionary, term_key
from listfile.tokens import split_words

_log = logging.getLogger(__name__)

YES_TOKENS = {"YES", "Y"}
NO_TOKENS = {"NO", "N"}
DELETE_TOKENS = {"DELETE", "D"}
QUIT_TOKENS = {"QUIT", "Q"}

CHOICE_HEURISTIC = "1"
CHOICE_DICTIONARY = "2"
CHOICE_HYBRID = "3"
CHOICE_KEEP = "4"
CHOICE_COMPOUND = "5"
DEFAULT_CHOICE = CHOICE_HYBRID

ERROR_KEY_MISMATCH = "The new word must be the same as the old word. Only casing may be altered."
ERROR_UNKNOWN_SEED = "The corrected term did not match a term already in the dictionary."
ERROR_UNKNOWN_ANSWER = "Please answer y, d or n."


class Stage(enum.Enum):
    PRESENT = "present"
    CONFIRM = "confirm"
    COMPOUND_SEED = "compound_seed"
    COMPOUND_CONFIRM = "compound_confirm"
    RESOLVED = "resolved"
    QUIT = "quit"


TERMINAL_STAGES = (Stage.RESOLVED, Stage.QUIT)


@dataclass(frozen=True)
class CurationState:
    stage: Stage
    key: str
    candidate: Optional[str] = None
    keep: bool = False
    seed: Optional[str] = None
    words: Tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class ResolveTerm:
    """Adopt `term` as canonical; back-fill its words unless it was kept as-is."""
    key: str
    term: str
    keep: bool


@dataclass(frozen=True)
class ReplaceCompound:
    """Drop the malformed `key`; optionally insert the words of `seed` instead."""
    key: str
    seed: str
    reinsert: bool


@dataclass(frozen=True)
class QuitCuration:
    pass


Action = Union[ResolveTerm, ReplaceCompound, QuitCuration]


class Transition(NamedTuple):
    state: CurationState
    action: Optional[Action] = None


class Suggestions(NamedTuple):
    heuristic: str
    dictionary: str
    hybrid: str
    keep: str


def start(key: str) -> CurationState:
    return CurationState(Stage.PRESENT, key)


def suggest(dictionary: ListfileDictionary, term: str) -> Suggestions:
    heuristic = term_score.guess(term)
    return Suggestions(
        heuristic=heuristic,
        dictionary=dictionary.guess(term),
        hybrid=dictionary.guess(heuristic),
        keep=term,
    )


def _normalize(line: Optional[str]) -> str:
    return (line or "").rstrip("\r\n")


def _candidate(state: CurationState, candidate: str, keep: bool = False) -> Transition:
    if term_key(candidate) != state.key:
        return Transition(CurationState(Stage.PRESENT, state.key, error=ERROR_KEY_MISMATCH))
    return Transition(CurationState(Stage.CONFIRM, state.key, candidate=candidate, keep=keep))


def _step_present(state: CurationState, line: str, dictionary: ListfileDictionary) -> Transition:
    entry = dictionary.get(state.key)
    if entry is None:
        return Transition(CurationState(Stage.RESOLVED, state.key))
    choice = line or DEFAULT_CHOICE
    if choice.upper() in QUIT_TOKENS:
        return Transition(CurationState(Stage.QUIT, state.key), QuitCuration())
    options = suggest(dictionary, entry.term)
    if choice == CHOICE_HEURISTIC:
        return _candidate(state, options.heuristic)
    if choice == CHOICE_DICTIONARY:
        return _candidate(state, options.dictionary)
    if choice == CHOICE_HYBRID:
        return _candidate(state, options.hybrid)
    if choice == CHOICE_KEEP:
        return _candidate(state, options.keep, keep=True)
    if choice == CHOICE_COMPOUND:
        return Transition(CurationState(Stage.COMPOUND_SEED, state.key))
    return _candidate(state, choice)


def _step_confirm(state: CurationState, line: str) -> Transition:
    answer = line.upper()
    if not line or answer in YES_TOKENS:
        if term_key(state.candidate or "") != state.key:
            return Transition(CurationState(Stage.PRESENT, state.key, error=ERROR_KEY_MISMATCH))
        return Transition(
            CurationState(Stage.RESOLVED, state.key, candidate=state.candidate, keep=state.keep),
            ResolveTerm(state.key, state.candidate or "", state.keep),
        )
    if answer in QUIT_TOKENS:
        return Transition(CurationState(Stage.QUIT, state.key), QuitCuration())
    if answer in NO_TOKENS or answer in DELETE_TOKENS:
        return Transition(CurationState(Stage.PRESENT, state.key))
    # Anything else is a freshly typed candidate
    return _candidate(state, line)


def _step_compound_seed(state: CurationState, line: str, dictionary: ListfileDictionary) -> Transition:
    if not line:
        return Transition(CurationState(Stage.COMPOUND_SEED, state.key, error=state.error))
    if line.upper() in QUIT_TOKENS:
        return Transition(CurationState(Stage.PRESENT, state.key))
    if not dictionary.contains_term(line):
        return Transition(CurationState(Stage.COMPOUND_SEED, state.key, error=ERROR_UNKNOWN_SEED))
    return Transition(
        CurationState(Stage.COMPOUND_CONFIRM, state.key, seed=line, words=tuple(split_words(line)))
    )


def _step_compound_confirm(state: CurationState, line: str) -> Transition:
    answer = line.upper()
    seed = state.seed or ""
    if not line or answer in YES_TOKENS:
        return Transition(CurationState(Stage.RESOLVED, state.key, seed=seed), ReplaceCompound(state.key, seed, True))
    if answer in DELETE_TOKENS:
        return Transition(CurationState(Stage.RESOLVED, state.key, seed=seed), ReplaceCompound(state.key, seed, False))
    if answer in NO_TOKENS:
        return Transition(CurationState(Stage.COMPOUND_SEED, state.key))
    if answer in QUIT_TOKENS:
        return Transition(CurationState(Stage.PRESENT, state.key))
    return Transition(
        CurationState(Stage.COMPOUND_CONFIRM, state.key, seed=seed, words=state.words, error=ERROR_UNKNOWN_ANSWER)
    )


def step(state: CurationState, line: Optional[str], dictionary: ListfileDictionary) -> Transition:
    """Advance the review of one entry by a single line of operator input."""
    line = _normalize(line)
    if state.stage is Stage.PRESENT:
        return _step_present(state, line, dictionary)
    if state.stage is Stage.CONFIRM:
        return _step_confirm(state, line)
    if state.stage is Stage.COMPOUND_SEED:
        return _step_compound_seed(state, line, dictionary)
    if state.stage is Stage.COMPOUND_CONFIRM:
        return _step_compound_confirm(state, line)
    return Transition(state)


def prompt(state: CurationState) -> str:
    if state.stage is Stage.PRESENT:
        return "> [1/2/3/4/5/input/q]: "
    if state.stage is Stage.CONFIRM:
        return "> [Y/n]: "
    if state.stage is Stage.COMPOUND_SEED:
        return "> [input/q]: "
    if state.stage is Stage.COMPOUND_CONFIRM:
        return "> [Y/d/n]: "
    return ""


def _format_score(score: float) -> str:
    if score == term_score.RESOLVED_SCORE:
        return "Maximum"
    return f"{score:g}"


def render(state: CurationState, dictionary: ListfileDictionary, progress: int = 0, total: int = 0) -> str:
    """Text shown to the operator for `state` (without the input prompt)."""
    lines: List[str] = []
    entry = dictionary.get(state.key)
    term = entry.term if entry is not None else state.key

    if state.stage in (Stage.COMPOUND_SEED, Stage.COMPOUND_CONFIRM):
        lines += ["========", "Correcting compound word.", "========", f"| Hint term: {term}", "|"]
        if state.stage is Stage.COMPOUND_SEED:
            lines.append("| Please enter a corrected term or composite term.")
        else:
            lines.append("| Processing the new term produced the following composite terms.")
            lines += [f"| · {w}" for w in state.words]
            lines += [
                "|",
                "| Is this correct? If yes, the old term will be replaced by these composite terms.",
                "| Optionally, you can delete the old term without adding new terms.",
            ]
        if state.error:
            lines.append(f"| Error: {state.error}")
        lines.append("========")
        return "\n".join(lines)

    lines += [
        "========",
        f"Progress: {progress} of {total}",
        "========",
        f"| Current word key: {state.key}",
        f"| Current word value: {term}",
        f"| Current word score: {_format_score(entry.score) if entry is not None else '-'}",
        "|",
    ]
    if state.stage is Stage.CONFIRM:
        lines.append(f"| New word value: {state.candidate}")
        lines.append("| New word score (manually set): Maximum")
    else:
        options = suggest(dictionary, term)
        lines += [
            f"| [1] Guessed correct word (TermScore)\t: {options.heuristic}",
            f"| [2] Guessed correct word (Dictionary)\t: {options.dictionary}",
            f"| [3] Guessed correct word (Hybrid)\t: {options.hybrid}",
            "| [4] Keep value",
            "| [5] Correct compound term",
        ]
    if state.error:
        lines.append(f"| Error: {state.error}")
    lines.append("========")
    if state.stage is Stage.PRESENT:
        lines.append("Default: Hybrid")
    return "\n".join(lines)


@dataclass
class CurationResult:
    total: int = 0
    resolved: int = 0
    replaced: int = 0
    skipped: int = 0
    quit: bool = False


class CurationSession:
    """Drives the review of every entry scoring below `tolerance`.

    `read_line(prompt)` supplies operator input (the console in production, a
    scripted sequence in tests); `write(text)` receives display output and
    `persist()` writes the dictionary. End of input counts as quitting.
    """

    def __init__(
        self,
        dictionary: ListfileDictionary,
        tolerance: float,
        read_line: Callable[[str], str],
        write: Callable[[str], None],
        persist: Callable[[], None],
        clear: Optional[Callable[[], None]] = None,
    ) -> None:
        self.dictionary = dictionary
        self.tolerance = tolerance
        self._read_line = read_line
        self._write = write
        self._persist = persist
        self._clear = clear

    def queue(self) -> List[str]:
        """Keys to review: shortest term first, ties in insertion order."""
        low = self.dictionary.low_score_entries(self.tolerance)
        return [key for key, _ in sorted(low, key=lambda kv: len(kv[1].term))]

    def _read(self, state: CurationState) -> Optional[str]:
        try:
            return self._read_line(prompt(state))
        except EOFError:
            return None

    def _apply(self, action: Optional[Action], result: CurationResult) -> None:
        if action is None:
            return
        if isinstance(action, QuitCuration):
            _log.info("saving dictionary and quitting curation")
            self._persist()
            return
        if isinstance(action, ResolveTerm):
            self.dictionary.confirm_term(action.term)
            if not action.keep:
                self.dictionary.add_new_term_words(action.term)
            result.resolved += 1
        elif isinstance(action, ReplaceCompound):
            self.dictionary.delete_term(action.key)
            if action.reinsert:
                self.dictionary.add_new_term_words(action.seed)
            result.replaced += 1
        self._persist()

    def review(self, key: str, progress: int, total: int, result: CurationResult) -> Stage:
        state = start(key)
        while state.stage not in TERMINAL_STAGES:
            if self._clear is not None:
                self._clear()
            self._write(render(state, self.dictionary, progress, total))
            line = self._read(state)
            if line is None:
                state, action = CurationState(Stage.QUIT, key), QuitCuration()
            else:
                state, action = step(state, line, self.dictionary)
            self._apply(action, result)
        return state.stage

    def run(self) -> CurationResult:
        keys = self.queue()
        result = CurationResult(total=len(keys))
        for progress, key in enumerate(keys, start=1):
            entry = self.dictionary.get(key)
            # Earlier edits may have removed the entry or raised its score
            if entry is None or not entry.score < self.tolerance:
                result.skipped += 1
                continue
            if self.review(key, progress, len(keys), result) is Stage.QUIT:
                result.quit = True
                break
        _log.info(
            "curation finished: %d resolved, %d replaced, %d skipped of %d%s",
            result.resolved, result.replaced, result.skipped, result.total,
            " (quit)" if result.quit else "",
        )
        return result
