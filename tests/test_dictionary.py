"""Tests for listfile.dictionary: ingestion, scoring, lookups and persistence."""
from __future__ import annotations

import struct
import unittest

import pytest

from listfile.codec import BinaryWriter, ListfileFormatError
from listfile.dictionary import DICTIONARY_MAGIC, DICTIONARY_VERSION, ListfileDictionary, term_key
from listfile.term_score import RESOLVED_SCORE
from listfile.tokens import split_path


def _ingest(d: ListfileDictionary, path: str) -> list[bool]:
    return [d.update_term_entry(t) for t in split_path(path)]


# ── update_term_entry ────────────────────────────────────────────────────────


class TestUpdateTermEntry(unittest.TestCase):
    def test_new_path_terms_fire_once(self):
        d = ListfileDictionary()
        self.assertEqual(_ingest(d, "TEXTURES\\FOO\\BARBAZ.BLP"), [True, True, True])
        self.assertEqual(_ingest(d, "TEXTURES\\FOO\\BARBAZ.BLP"), [False, False, False])
        self.assertEqual(sorted(d), ["BARBAZ.BLP", "FOO", "TEXTURES"])

    def test_key_is_upper_case_of_term(self):
        d = ListfileDictionary()
        for t in ("Textures", "foo", "BarBaz.blp"):
            d.update_term_entry(t)
        for key, entry in d.items():
            self.assertEqual(key, term_key(entry.term))

    def test_better_casing_replaces_entry(self):
        d = ListfileDictionary()
        d.update_term_entry("TEXTURES")
        self.assertTrue(d.update_term_entry("Textures"))
        self.assertEqual(d.get("textures").term, "Textures")
        self.assertEqual(d.get("textures").score, 1.0)

    def test_score_never_decreases(self):
        d = ListfileDictionary()
        d.update_term_entry("Textures")
        self.assertFalse(d.update_term_entry("TEXTURES"))
        self.assertFalse(d.update_term_entry("textures"))
        self.assertEqual(d.get("TEXTURES").term, "Textures")

    def test_resolved_entry_is_never_overwritten(self):
        d = ListfileDictionary()
        d.update_term_entry("WORLD")
        d.confirm_term("WoRlD")
        self.assertFalse(d.update_term_entry("World"))
        self.assertEqual(d.get("world").term, "WoRlD")


# ── score forcing and partitions ─────────────────────────────────────────────


class TestScores(unittest.TestCase):
    def setUp(self):
        self.d = ListfileDictionary()
        for t in ("TEXTURES", "textures2", "Foo", "BARBAZ.BLP"):
            self.d.update_term_entry(t)

    def test_set_term_score_absent_is_noop(self):
        self.assertFalse(self.d.set_term_score("MISSING", RESOLVED_SCORE))
        self.assertNotIn("MISSING", self.d)

    def test_set_term_score_forces_value(self):
        self.assertTrue(self.d.set_term_score("barbaz.blp", RESOLVED_SCORE))
        self.assertEqual(self.d.get("BARBAZ.BLP").score, RESOLVED_SCORE)
        self.assertEqual(self.d.get("BARBAZ.BLP").term, "BARBAZ.BLP")
        self.assertFalse(self.d.set_term_score("BARBAZ.BLP", RESOLVED_SCORE))

    def test_resolved_entries_leave_low_scores_for_any_tolerance(self):
        self.d.set_term_score("BARBAZ.BLP", RESOLVED_SCORE)
        for tolerance in (0.0, 0.5, 1.0, 1e308):
            self.assertNotIn("BARBAZ.BLP", dict(self.d.low_score_entries(tolerance)))

    def test_partitions_are_complementary(self):
        low = dict(self.d.low_score_entries(0.5))
        high = dict(self.d.high_score_entries(0.5))
        self.assertEqual(set(low), {"TEXTURES", "TEXTURES2", "BARBAZ.BLP"})
        self.assertEqual(set(high), {"FOO"})
        self.assertEqual(set(low) | set(high), set(self.d))

    def test_partitions_are_live(self):
        self.assertIn("TEXTURES", dict(self.d.low_score_entries(0.5)))
        self.d.confirm_term("Textures")
        self.assertNotIn("TEXTURES", dict(self.d.low_score_entries(0.5)))

    def test_confirm_term_requires_existing_key(self):
        self.assertFalse(self.d.confirm_term("Nothing"))
        self.assertTrue(self.d.confirm_term("Textures"))
        self.assertTrue(self.d.get("TEXTURES").is_resolved)


# ── guess / optimize_list ────────────────────────────────────────────────────


def test_guess_uses_known_casing_only():
    d = ListfileDictionary()
    d.update_term_entry("Textures")
    assert d.guess("TEXTURES") == "Textures"
    assert d.guess("tExTuReS") == "Textures"
    assert d.guess("UNKNOWN") == "UNKNOWN"
    assert "UNKNOWN" not in d


def test_optimize_list_rewrites_components():
    d = ListfileDictionary()
    for path in ("TEXTURES\\FOO\\BARBAZ.BLP", "Textures\\Foo\\Qux.blp"):
        _ingest(d, path)
    raw = ["TEXTURES\\FOO\\BARBAZ.BLP", "textures\\foo\\QUX.BLP", "TEXTURES\\\\NEW.BLP"]
    assert d.optimize_list(raw) == [
        "Textures\\Foo\\BARBAZ.BLP",
        "Textures\\Foo\\Qux.blp",
        "Textures\\\\NEW.BLP",
    ]


def test_optimize_list_is_idempotent():
    d = ListfileDictionary()
    raw = ["WORLD\\MAPS\\Azeroth\\AZEROTH_32_48.ADT", "World\\wmo\\Dungeon\\KL_Orgrimmar.wmo"]
    for path in raw:
        _ingest(d, path)
    once = d.optimize_list(raw)
    assert d.optimize_list(once) == once
    assert [p.count("\\") for p in once] == [p.count("\\") for p in raw]


# ── compound words / deletion ────────────────────────────────────────────────


def test_add_new_term_words_backfills_sub_words():
    d = ListfileDictionary()
    d.update_term_entry("bar")
    assert d.add_new_term_words("BarBaz_Tree") == 3
    assert d.get("BAR").term == "Bar"
    assert d.get("BAZ").score == 1.0
    assert "TREE" in d
    assert "BARBAZ_TREE" not in d


def test_delete_term():
    d = ListfileDictionary()
    d.update_term_entry("MULLGORE")
    assert d.delete_term("Mullgore")
    assert not d.contains_term("MULLGORE")
    assert not d.delete_term("MULLGORE")


# ── persistence ──────────────────────────────────────────────────────────────


def _sample() -> ListfileDictionary:
    d = ListfileDictionary()
    for t in ("TEXTURES", "Foo", "barbaz.blp", "Ärger", "32_48"):
        d.update_term_entry(t)
    d.confirm_term("Textures")
    d.set_term_score("Foo", 0.1)
    return d


def test_serialize_round_trip_is_exact():
    d = _sample()
    restored = ListfileDictionary.deserialize(d.serialize())
    assert list(restored.items()) == list(d.items())
    for key, entry in d.items():
        other = restored.get(key)
        assert other.term == entry.term
        assert struct.pack("<d", other.score) == struct.pack("<d", entry.score)
    assert restored.get("TEXTURES").score == RESOLVED_SCORE


def test_serialize_empty():
    assert len(ListfileDictionary.deserialize(ListfileDictionary().serialize())) == 0


@pytest.mark.parametrize("mangle", [
    lambda b: b"XDIC" + b[4:],
    lambda b: b[:-3],
    lambda b: b + b"\x00",
    lambda b: b[:4] + struct.pack("<I", 99) + b[8:],
])
def test_deserialize_rejects_corrupt_bytes(mangle):
    with pytest.raises(ListfileFormatError):
        ListfileDictionary.deserialize(mangle(_sample().serialize()))


def test_deserialize_rejects_key_term_mismatch():
    w = BinaryWriter()
    w.magic(DICTIONARY_MAGIC)
    w.u32(DICTIONARY_VERSION)
    w.u64(1)
    w.text("FOO")
    w.text("Bar")
    w.f64(1.0)
    with pytest.raises(ListfileFormatError):
        ListfileDictionary.deserialize(w.getvalue())
