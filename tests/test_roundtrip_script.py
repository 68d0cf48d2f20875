import subprocess
import sys
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "roundtrip_check.py"


def _run(*args):
    return subprocess.run([sys.executable, str(SCRIPT), *args], capture_output=True, text=True)


def test_roundtrip_ok(tmp_path):
    (tmp_path / "a.tree").write_text("A\n├── When x\n│   └── It fails\n└── It b\n", encoding="utf-8")
    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "b.tree").write_text("B::f\n└── Given y\n    └── It c\n", encoding="utf-8")
    proc = _run("--dir", str(tmp_path))
    assert proc.returncode == 0, proc.stderr
    assert "OK: 2 tree(s)" in proc.stdout


def test_roundtrip_reports_bad_tree(tmp_path):
    (tmp_path / "bad.tree").write_text("Root\n└── Returns\n", encoding="utf-8")
    proc = _run("--dir", str(tmp_path), "--lang", "rust")
    assert proc.returncode == 1
    assert "E_TREE_TITLE_KEYWORD" in proc.stderr


def test_roundtrip_missing_dir(tmp_path):
    proc = _run("--dir", str(tmp_path / "nope"))
    assert proc.returncode == 2
    assert "E_TREE_DIR_NOT_FOUND" in proc.stderr
