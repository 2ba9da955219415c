from __future__ import annotations

from pathlib import Path

from scripts.lib.packages import ListfilePackage, discover_packages, package_name


def test_file_list_skips_blank_lines_and_line_endings(tmp_path: Path):
    p = tmp_path / "Data01.txt"
    raw = b"TEXTURES\\FOO\\BARBAZ.BLP\r\n\r\nWORLD\\MAPS\\AZEROTH.WDT\n"
    p.write_bytes(raw)
    pkg = ListfilePackage(p)
    assert pkg.name == "Data01"
    assert pkg.file_list() == ["TEXTURES\\FOO\\BARBAZ.BLP", "WORLD\\MAPS\\AZEROTH.WDT"]
    assert pkg.index_bytes() == raw


def test_package_name_of_bare_listfile(tmp_path: Path):
    assert package_name(tmp_path / "patch-3" / "(listfile)") == "patch-3"
    assert package_name(tmp_path / "common.lst") == "common"


def test_discover_packages_filters_and_sorts(tmp_path: Path):
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "(listfile)").write_text("A\\B\n")
    (tmp_path / "patch.LST").write_text("A\n")
    (tmp_path / "Data01.txt").write_text("A\n")
    (tmp_path / "readme.md").write_text("not a package\n")
    found = discover_packages(tmp_path, (".txt", ".lst"))
    assert [p.name for p in found] == ["Data01", "b", "patch"]


def test_discover_packages_keeps_every_version_of_a_name(tmp_path: Path):
    for version in ("v1", "v2"):
        (tmp_path / version).mkdir()
        (tmp_path / version / "Data01.txt").write_text(f"{version.upper()}\\A.BLP\n")
    found = discover_packages(tmp_path, (".txt",))
    assert [p.name for p in found] == ["Data01", "Data01"]
    assert [p.file_list() for p in found] == [["V1\\A.BLP"], ["V2\\A.BLP"]]
