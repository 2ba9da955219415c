"""listfile package exports for the listtools core.

Re-exports the commonly used symbols so scripts can write
`from listfile import ListfileDictionary`.
"""
from .codec import ListfileFormatError  # noqa: F401
from .dictionary import DictionaryEntry, ListfileDictionary, term_key  # noqa: F401
from .optimized_list import OptimizedList, OptimizedListContainer, hash_hex, package_hash  # noqa: F401
from .term_score import RESOLVED_SCORE  # noqa: F401

__all__ = [
    "DictionaryEntry",
    "ListfileDictionary",
    "ListfileFormatError",
    "OptimizedList",
    "OptimizedListContainer",
    "RESOLVED_SCORE",
    "hash_hex",
    "package_hash",
    "term_key",
]
