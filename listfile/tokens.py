"""Path and sub-word tokenization shared by the dictionary and curation."""
from __future__ import annotations

import re
from typing import List

PATH_SEPARATOR = "\\"

# Characters that always end a word inside a term. Path separators are
# included so a full path can be fed to split_words as well.
WORD_SEPARATORS = re.compile(r"[\\/_\-.\s]+")
# lower->Upper ("BarBaz"), UPPER->Upper+lower ("XMLFile"), letter<->digit
_CASE_BOUNDARY = re.compile(
    r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])|(?<=[A-Za-z])(?=[0-9])|(?<=[0-9])(?=[A-Za-z])"
)


def split_path(path: str) -> List[str]:
    """Split an archive path into its folder and file components.

    Empty components are kept so that joining with PATH_SEPARATOR gives back
    the original string.
    """
    return path.split(PATH_SEPARATOR)


def join_path(components: List[str]) -> str:
    return PATH_SEPARATOR.join(components)


def split_words(term: str) -> List[str]:
    """Split a compound term such as 'BarBaz_Tree01.blp' into its words."""
    words: List[str] = []
    for chunk in WORD_SEPARATORS.split(term or ""):
        if not chunk:
            continue
        for w in _CASE_BOUNDARY.split(chunk):
            if w:
                words.append(w)
    return words
