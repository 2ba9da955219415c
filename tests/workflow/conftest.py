from __future__ import annotations

import io
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from scripts.lib.console import scripted
from scripts.listtools import main


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    """Isolated input/output/dictionary locations for a CLI run."""
    monkeypatch.delenv("LISTTOOLS_CONFIG", raising=False)
    monkeypatch.setenv("LISTTOOLS_DICTIONARY", str(tmp_path / "appdata" / "listtools" / "dictionary.dic"))
    (tmp_path / "input").mkdir()
    return tmp_path


@pytest.fixture
def dictionary_path(workspace: Path) -> Path:
    return workspace / "appdata" / "listtools" / "dictionary.dic"


class RunResult:
    def __init__(self, rc: int, stdout: str) -> None:
        self.rc = rc
        self.stdout = stdout


@pytest.fixture
def cli(workspace: Path):
    """Run listtools in-process with scripted operator answers."""
    def _runner(argv: List[str], answers: Optional[Iterable[str]] = None) -> RunResult:
        out = io.StringIO()
        rc = main(argv, console=scripted(answers or [], out=out))
        return RunResult(rc, out.getvalue())
    return _runner
