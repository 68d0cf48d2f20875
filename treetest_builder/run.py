from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .batch import CheckOutcome, check_file, expand_paths, scaffold_file
from .config import LANGS, Config, ConfigError, load_config
from .errors import Diagnostic

SUCCESS_MESSAGE = "All checks completed successfully! No issues found."


def _print_diagnostics(diags: list[Diagnostic]) -> None:
    payload = [d.to_dict() for d in diags]
    print(json.dumps(payload, ensure_ascii=False, indent=2), file=sys.stderr)


def _plural(count: int, one: str, many: str) -> str:
    return one if count == 1 else many


def _add_common(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("files", nargs="+", help="Tree files (glob patterns are expanded).")
    ap.add_argument("-l", "--lang", choices=LANGS, default=None, help="Target language (default: solidity).")
    ap.add_argument(
        "-m",
        "--skip-modifiers",
        action="store_true",
        default=None,
        help="Do not emit or check helpers (modifiers).",
    )
    ap.add_argument(
        "--format-descriptions",
        action="store_true",
        default=None,
        help="Capitalize descriptions and end them with a period.",
    )
    ap.add_argument("--config", default=None, help="JSON config file; flags override its values.")


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="treetest")
    sub = ap.add_subparsers(dest="command", required=True)

    scaffold = sub.add_parser("scaffold", help="Generate test source from tree files.")
    _add_common(scaffold)
    scaffold.add_argument("--with-vm-skip", action="store_true", default=None, help="Add vm.skip(true) to each test.")
    scaffold.add_argument("-s", "--solidity-version", default=None, help="Pragma version for Solidity output.")
    scaffold.add_argument("-w", "--write-files", action="store_true", help="Write <stem>_test.<ext> next to each tree.")
    scaffold.add_argument("-f", "--force-write", action="store_true", help="Overwrite existing output files.")

    check = sub.add_parser("check", help="Check test files against tree files.")
    _add_common(check)
    check.add_argument("--fix", action="store_true", help="Repair fixable violations.")
    check.add_argument("--stdout", action="store_true", help="Print repaired files instead of writing them.")
    check.add_argument("--json", action="store_true", help="Print diagnostics as JSON on stderr.")
    return ap


def _resolve_config(args: argparse.Namespace) -> Config:
    cfg = Config()
    if args.config:
        cfg = load_config(Path(args.config), cfg)
    return cfg.merged(
        lang=args.lang,
        skip_helpers=args.skip_modifiers,
        format_descriptions=args.format_descriptions,
        emit_vm_skip=getattr(args, "with_vm_skip", None),
        solidity_version=getattr(args, "solidity_version", None),
    )


def _warn(message: str) -> None:
    print(f"warn: {message}", file=sys.stderr)


def _run_scaffold(args: argparse.Namespace, cfg: Config, paths: list[Path]) -> int:
    failed = False
    framed = len(paths) > 1
    for path in paths:
        outcome = scaffold_file(path, cfg, write=args.write_files, force=args.force_write)
        if outcome.error is not None:
            failed = True
            d = outcome.error
            _warn(f"{d.path or path}: {d.code}: {d.message}")
            continue
        if args.write_files:
            print(f"wrote {outcome.output_path}")
            continue
        if framed:
            print(f"--> {outcome.output_path}")
            print((outcome.text or "").strip())
            print("<--")
        else:
            print(outcome.text or "", end="")
    return 1 if failed else 0


def _report_check(outcomes: list[CheckOutcome], as_json: bool) -> int:
    diags: list[Diagnostic] = []
    total = 0
    fixable = 0
    for outcome in outcomes:
        if outcome.error is not None:
            total += 1
            diags.append(outcome.error)
            if not as_json:
                d = outcome.error
                print(f"error: Failed to check {outcome.tree_path}: {d.code}: {d.message}", file=sys.stderr)
            continue
        for violation in outcome.violations:
            total += 1
            fixable += 1 if violation.fixable else 0
            diags.append(violation.to_diagnostic(str(outcome.source_path)))
            if not as_json:
                print(f"{outcome.source_path}: {violation.message()}", file=sys.stderr)

    if as_json and diags:
        _print_diagnostics(diags)
    if total == 0:
        print(SUCCESS_MESSAGE)
        return 0
    if not as_json:
        summary = f"\nwarn: {total} {_plural(total, 'check', 'checks')} failed"
        if fixable:
            summary += (
                f" (run `treetest check --fix <.tree files>` to apply {fixable} "
                f"{_plural(fixable, 'fix', 'fixes')})"
            )
        print(summary, file=sys.stderr)
    return 1


def _report_fix(outcomes: list[CheckOutcome], args: argparse.Namespace) -> int:
    diags: list[Diagnostic] = []
    fixed = 0
    unresolved = 0
    for outcome in outcomes:
        if outcome.error is not None:
            unresolved += 1
            diags.append(outcome.error)
            if not args.json:
                d = outcome.error
                print(f"error: {outcome.tree_path}: {d.code}: {d.message}", file=sys.stderr)
        for violation in outcome.violations:
            if violation.fixable:
                continue
            diags.append(violation.to_diagnostic(str(outcome.source_path)))
            if not args.json:
                print(f"{outcome.source_path}: {violation.message()}", file=sys.stderr)
        for failure in outcome.failures:
            diags.append(failure)
            if not args.json:
                print(f'unable to fix "{outcome.source_path}" due to:\n{failure.code}: {failure.message}', file=sys.stderr)
        fixed += outcome.fixed
        unresolved += outcome.unresolved
        if args.stdout and outcome.text is not None:
            print(f"--> {outcome.source_path}")
            print(outcome.text.strip())
            print("<--")

    if args.json and diags:
        _print_diagnostics(diags)
    print(f"\nsuccess: {fixed} {_plural(fixed, 'issue', 'issues')} fixed.")
    if unresolved:
        _warn(f"{unresolved} {_plural(unresolved, 'issue', 'issues')} could not be fixed")
        return 1
    return 0


def _run_check(args: argparse.Namespace, cfg: Config, paths: list[Path]) -> int:
    outcomes = [check_file(path, cfg, apply_fix=args.fix, write=not args.stdout) for path in paths]
    if args.fix:
        return _report_fix(outcomes, args)
    return _report_check(outcomes, args.json)


def main(argv: list[str] | None = None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    try:
        cfg = _resolve_config(args)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    paths, unmatched = expand_paths(args.files)
    for pattern in unmatched:
        _warn(f"could not expand {pattern}: no matching files")
    if not paths:
        print("E_INPUT_EMPTY: no tree files to process", file=sys.stderr)
        return 1

    if args.command == "scaffold":
        return _run_scaffold(args, cfg, paths)
    return _run_check(args, cfg, paths)


if __name__ == "__main__":
    raise SystemExit(main())
