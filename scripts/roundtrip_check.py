#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from treetest_builder.backends import get_backend  # noqa: E402
from treetest_builder.check import check_text, expectations_from_hir  # noqa: E402
from treetest_builder.config import LANGS, Config  # noqa: E402
from treetest_builder.emitter import emit  # noqa: E402
from treetest_builder.errors import BuilderError  # noqa: E402
from treetest_builder.translator import translate  # noqa: E402
from treetest_builder.tree import parse_tree  # noqa: E402


def roundtrip(tree_path: Path, cfg: Config) -> list[str]:
    hir = translate(parse_tree(tree_path.read_text(encoding="utf-8")), cfg)
    backend = get_backend(cfg, hir.title)
    text = emit(hir, backend)
    _, violations = check_text(text, expectations_from_hir(hir, backend), backend)
    return [f"{tree_path} [{cfg.lang}]: {v.message()}" for v in violations]


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--dir", required=True, help="Directory containing .tree files.")
    ap.add_argument("--lang", choices=LANGS, action="append", help="Language to check (repeatable; default: all).")
    ap.add_argument("--skip-modifiers", action="store_true", help="Check without helpers.")
    args = ap.parse_args()

    root = Path(args.dir)
    if not root.is_dir():
        print(f"E_TREE_DIR_NOT_FOUND: {root}", file=sys.stderr)
        return 2
    trees = sorted(root.rglob("*.tree"))
    if not trees:
        print(f"E_TREE_DIR_EMPTY: {root}", file=sys.stderr)
        return 2

    failures: list[str] = []
    for lang in args.lang or list(LANGS):
        cfg = Config(lang=lang, skip_helpers=args.skip_modifiers)
        for tree_path in trees:
            try:
                failures.extend(roundtrip(tree_path, cfg))
            except BuilderError as exc:
                d = exc.diagnostic
                failures.append(f"{tree_path} [{lang}]: {d.code}: {d.message} ({d.path})")

    if failures:
        for line in failures:
            print(line, file=sys.stderr)
        print(f"FAIL: {len(failures)} roundtrip issue(s)", file=sys.stderr)
        return 1
    print(f"OK: {len(trees)} tree(s) roundtrip cleanly")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
