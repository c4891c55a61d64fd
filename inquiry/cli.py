#!/usr/bin/env python3
"""inquiry CLI: run a Questionset against a subject and export its receipt.

This is the installable CLI entrypoint (console_scripts).

Subcommands:
- inquiry about            → Print package identity info
- inquiry run              → Run questions against a JSON subject, write a sealed receipt
- inquiry receipt verify   → Verify a sealed receipt's hash (and Ed25519 signature)

Exit codes:
- 0: GO / verification passed
- 1: verification failed
- 2: NO-GO (at least one failure was recorded)
- 3: usage/internal error (unknown question, timeout, bad input)
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import importlib.util
import json
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, metadata, version
from pathlib import Path
from typing import Any

from inquiry.deferred import InquiryP
from inquiry.errors import InquiryError
from inquiry.questionset import Questionset
from inquiry.record import InquiryRecord
from inquiry.seal import sha256_bytes
from inquiry.sync import Inquiry


DEFAULT_TIMEOUT_MS = 30000
TIMEOUT_ENV_VAR = "INQUIRY_TIMEOUT_MS"


def default_timeout_ms() -> float:
    raw = os.environ.get(TIMEOUT_ENV_VAR)
    if raw is None or not raw.strip():
        return float(DEFAULT_TIMEOUT_MS)
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{TIMEOUT_ENV_VAR} must be a number of milliseconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{TIMEOUT_ENV_VAR} must be positive, got {raw!r}")
    return value


# ---------------------------------------------------------------------------
# about subcommand
# ---------------------------------------------------------------------------

def cmd_about(_: argparse.Namespace) -> int:
    """Print package identity info (human-readable)."""

    try:
        pkg_version = version("inquiry-chain")
    except PackageNotFoundError:
        pkg_version = "0.0.0"

    pkg_name = "inquiry-chain"
    pkg_summary = ""
    try:
        meta = metadata("inquiry-chain")
        pkg_name = str(meta.get("Name") or pkg_name)
        pkg_summary = str(meta.get("Summary") or "")
    except PackageNotFoundError:
        pass

    print(f"{pkg_name} {pkg_version}")
    if pkg_summary:
        print(pkg_summary)
    return 0


# ---------------------------------------------------------------------------
# run subcommand
# ---------------------------------------------------------------------------

def load_questionset(ref: str) -> Questionset:
    """Resolve "package.module:attr" or "path/to/file.py:attr" to a Questionset.

    attr may name a Questionset or a zero-argument factory returning one.
    """

    target, sep, attr = str(ref or "").rpartition(":")
    if not sep or not target or not attr:
        raise ValueError(f"--questionset must look like MODULE:ATTR or FILE.py:ATTR, got {ref!r}")

    if target.endswith(".py"):
        path = Path(target).resolve()
        if not path.is_file():
            raise ValueError(f"questionset file not found: {path}")
        module_name = f"_inquiry_questionset_{sha256_bytes(str(path).encode('utf-8'))[:12]}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ValueError(f"cannot load questionset file: {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    else:
        module = importlib.import_module(target)

    obj = getattr(module, attr, None)
    if obj is None:
        raise ValueError(f"{target} has no attribute {attr!r}")
    if not isinstance(obj, Questionset) and callable(obj):
        obj = obj()
    if not isinstance(obj, Questionset):
        raise ValueError(f"{ref} is not a Questionset")
    return obj


def _load_subject(args: argparse.Namespace) -> Any:
    if args.subject_json is not None:
        raw = str(args.subject_json)
    else:
        raw = Path(str(args.subject_file)).read_text(encoding="utf-8", errors="strict")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"subject is not valid JSON: {e}") from e


def run_questions(
    questionset: Questionset,
    subject: Any,
    *,
    names: list[str],
    use_async: bool,
    timeout_ms: float,
) -> InquiryRecord:
    """Run the named questions (all of them when names is empty), in order."""

    if not use_async:
        chain = Inquiry.subject(subject).using(questionset)
        chain = chain.inquire_all() if not names else _inquire_each(chain, names)
        return chain.join()

    async def settle() -> InquiryRecord:
        chain = InquiryP.subject(subject).using(questionset)
        chain = chain.inquire_all() if not names else _inquire_each(chain, names)
        settled = await chain.await_(timeout_ms)
        return settled.join()

    return asyncio.run(settle())


def _inquire_each(chain: Any, names: list[str]) -> Any:
    for name in names:
        chain = chain.inquire(name)
    return chain


def _write_json_deterministic(path: Path, obj: Any) -> bytes:
    if path.exists() and (path.is_symlink() or not path.is_file()):
        raise ValueError(f"invalid output path: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    data = (json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8", errors="strict")
    path.write_bytes(data)
    return data


def cmd_run(args: argparse.Namespace) -> int:
    from inquiry.seal import receipt_payload, seal_payload

    try:
        questionset = load_questionset(str(args.questionset))
        subject = _load_subject(args)
        timeout_ms = float(args.timeout_ms) if args.timeout_ms is not None else default_timeout_ms()
        if timeout_ms <= 0:
            raise ValueError("--timeout-ms must be positive")
        record = run_questions(
            questionset,
            subject,
            names=[str(x) for x in (args.question or [])],
            use_async=bool(args.use_async),
            timeout_ms=timeout_ms,
        )
        payload = receipt_payload(record, run_id=str(args.run_id), deterministic=bool(args.deterministic))
        key_blob = Path(str(args.sign_key)).read_bytes() if args.sign_key else None
        sealed = seal_payload(payload, private_key_blob=key_blob)
        out_path = Path(str(args.out))
        _write_json_deterministic(out_path, sealed)
    except InquiryError as e:
        print(f"[inquiry run] ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        return 3
    except Exception as e:
        print(f"[inquiry run] ERROR: {e}", file=sys.stderr)
        if isinstance(e, TypeError) and not args.use_async:
            print("[inquiry run] Remediation: Do pass --async when questions are coroutines, then re-run.", file=sys.stderr)
        return 3

    print(f"[inquiry run] wrote: {out_path}", file=sys.stderr)
    print(f"[inquiry run] receipt_hash: {sealed['receipt_hash']}", file=sys.stderr)
    print(f"[inquiry run] verdict: {sealed['verdict']}", file=sys.stderr)
    return 0 if sealed["verdict"] == "GO" else 2


# ---------------------------------------------------------------------------
# receipt subcommands
# ---------------------------------------------------------------------------

def cmd_receipt_verify(args: argparse.Namespace) -> int:
    from inquiry.seal import verify_sealed_payload

    try:
        in_path = Path(str(args.input))
        payload = json.loads(in_path.read_text(encoding="utf-8", errors="strict"))
        if not isinstance(payload, dict):
            raise ValueError("receipt must be a JSON object")
        pub_blob = Path(str(args.public_key)).read_bytes() if args.public_key else None
    except Exception as e:
        print(f"[inquiry receipt verify] ERROR: {e}", file=sys.stderr)
        return 3

    try:
        verify_sealed_payload(payload, public_key_blob=pub_blob)
    except ValueError as e:
        print(f"[inquiry receipt verify] FAIL: {e}", file=sys.stderr)
        return 1

    print(f"[inquiry receipt verify] OK: {in_path}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="inquiry",
        description="inquiry CLI: run Pass/Fail questions against a subject and seal the receipt",
    )
    parser.add_argument("--verbose", action="store_true", help="Log chain activity to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # about
    subparsers.add_parser("about", help="Print package identity info")

    # run
    p_run = subparsers.add_parser("run", help="Run questions against a JSON subject and write a sealed receipt")
    p_run.add_argument("--questionset", required=True, help="MODULE:ATTR or FILE.py:ATTR naming a Questionset")
    subject_group = p_run.add_mutually_exclusive_group(required=True)
    subject_group.add_argument("--subject-json", default=None, help="Subject as an inline JSON document")
    subject_group.add_argument("--subject-file", default=None, help="Path to a JSON subject document")
    p_run.add_argument("--out", required=True, help="Output receipt JSON path")
    p_run.add_argument(
        "--question",
        action="append",
        default=[],
        help="Question name to ask, in order (repeatable; default: every question in the set)",
    )
    p_run.add_argument("--async", dest="use_async", action="store_true", help="Run with InquiryP (coroutine questions)")
    p_run.add_argument(
        "--timeout-ms",
        type=float,
        default=None,
        help=f"Settlement timeout for --async runs (default: ${TIMEOUT_ENV_VAR} or {DEFAULT_TIMEOUT_MS})",
    )
    p_run.add_argument("--run-id", default="unknown", help="Run ID to embed in the receipt (default: unknown)")
    p_run.add_argument("--sign-key", default=None, help="Ed25519 private key (64-hex seed or PEM) to sign the receipt")
    p_run.add_argument("--deterministic", action="store_true", help="Use a fixed generated_at timestamp")
    p_run.set_defaults(func=cmd_run)

    # receipt (subparser group)
    p_receipt = subparsers.add_parser("receipt", help="Receipt helper commands")
    receipt_subs = p_receipt.add_subparsers(dest="receipt_command", help="Receipt subcommand")

    # receipt verify
    p_receipt_verify = receipt_subs.add_parser("verify", help="Verify receipt_hash and optional signature")
    p_receipt_verify.add_argument("--in", dest="input", required=True, help="Receipt JSON path")
    p_receipt_verify.add_argument("--public-key", default=None, help="Ed25519 public key (64-hex or PEM)")
    p_receipt_verify.set_defaults(func=cmd_receipt_verify)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[inquiry] %(levelname)s %(name)s: %(message)s")

    if args.command == "about":
        return cmd_about(args)
    elif args.command == "run":
        return int(args.func(args))
    elif args.command == "receipt":
        if args.receipt_command == "verify":
            return int(args.func(args))
        p_receipt.print_help()
        return 3
    else:
        parser.print_help()
        return 3


if __name__ == "__main__":
    sys.exit(main())
