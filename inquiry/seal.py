"""Receipt export and sealing.

A settled chain's receipt is exported as a JSON payload, bound by a sha256
receipt_hash over its canonical bytes, and optionally signed with Ed25519.

    payload = receipt_payload(record, run_id="run-001", deterministic=True)
    sealed = seal_payload(payload, private_key_blob=key_bytes)
    verify_sealed_payload(sealed, public_key_blob=pub_bytes)
"""

from __future__ import annotations

import hashlib
import json
import math
import types
from datetime import datetime, timezone
from typing import Any

from inquiry.record import InquiryRecord


SCHEMA_VERSION = "1.0.0"
SIGNATURE_ALG = "ed25519"
FIXED_TIMESTAMP_UTC_Z = "1970-01-01T00:00:00Z"

# Fields derived from the payload; never part of the hashed or signed bytes.
_DERIVED_FIELDS = ("receipt_hash", "signature_alg", "signature")

_HEX = frozenset("0123456789abcdefABCDEF")

# Values whose str() carries a memory address or other per-process detail.
_OPAQUE_TYPES = (type, types.FunctionType, types.BuiltinFunctionType, types.MethodType, types.ModuleType)


def _opaque_label(value: Any) -> str:
    kind = type(value).__name__
    name = getattr(value, "__qualname__", None) or getattr(value, "__name__", None)
    return f"<{kind} {name}>" if isinstance(name, str) else f"<{kind}>"


def to_json_value(value: Any) -> Any:
    """Map check values onto plain JSON types, the same way in every process.

    Dict keys become strings, tuples become lists and sets become sorted lists.
    Other values are rendered with str(), except ones without a str() of their
    own, which render as their type (and name, for functions and classes).
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, dict):
        return {k if isinstance(k, str) else str(to_json_value(k)): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((to_json_value(v) for v in value), key=lambda v: json.dumps(v, sort_keys=True))
    cls = type(value)
    if isinstance(value, _OPAQUE_TYPES) or (cls.__str__ is object.__str__ and cls.__repr__ is object.__repr__):
        return _opaque_label(value)
    return str(value)


def canonical_json_bytes(obj: Any) -> bytes:
    """Return canonical JSON bytes (UTF-8, sorted keys, compact separators, trailing LF)."""

    text = json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"), allow_nan=False) + "\n"
    return text.encode("utf-8", errors="strict")


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def is_hex_sha256(s: str) -> bool:
    return isinstance(s, str) and len(s) == 64 and all(c in _HEX for c in s)


def utc_timestamp_iso_z(*, deterministic: bool) -> str:
    if deterministic:
        return FIXED_TIMESTAMP_UTC_Z
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def receipt_payload(record: InquiryRecord, *, run_id: str = "unknown", deterministic: bool = False) -> dict[str, Any]:
    if not isinstance(record, InquiryRecord):
        raise TypeError("receipt_payload() takes a settled InquiryRecord")
    if not record.iou.is_empty():
        raise ValueError("chain has not settled; await it before exporting the receipt")
    rid = str(run_id or "").strip()
    if not rid:
        raise ValueError("run_id missing/invalid")

    entries = [
        {
            "name": name,
            "status": "FAIL" if outcome.is_fail else "PASS",
            "values": to_json_value(outcome.join()),
        }
        for name, outcome in record.receipt
    ]
    failed = len(record.fail.join())
    return {
        "schema_version": SCHEMA_VERSION,
        "run_id": rid,
        "generated_at": utc_timestamp_iso_z(deterministic=deterministic),
        "verdict": "NO-GO" if failed else "GO",
        "summary": {
            "questions": len(entries),
            "passed": len(record.pass_.join()),
            "failed": failed,
        },
        "entries": entries,
    }


def unsigned_payload(payload: dict[str, Any]) -> dict[str, Any]:
    unsigned = dict(payload)
    for key in _DERIVED_FIELDS:
        unsigned.pop(key, None)
    return unsigned


def receipt_hash(payload: dict[str, Any]) -> str:
    return sha256_bytes(canonical_json_bytes(unsigned_payload(payload)))


def _load_ed25519_private_key(blob: bytes) -> Any:
    try:
        from cryptography.hazmat.primitives import serialization
        from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
    except Exception as e:  # pragma: no cover
        raise ValueError("Missing crypto dependency for Ed25519 signing (install 'cryptography').") from e

    trimmed = blob.strip()
    try:
        hex_s = trimmed.decode("ascii", errors="strict").strip()
    except UnicodeDecodeError:
        hex_s = ""
    if len(hex_s) == 64 and all(c in "0123456789abcdefABCDEF" for c in hex_s):
        return Ed25519PrivateKey.from_private_bytes(bytes.fromhex(hex_s))

    key = serialization.load_pem_private_key(trimmed, password=None)
    if not isinstance(key, Ed25519PrivateKey):
        raise ValueError("Private key is not Ed25519")
    return key


def _load_ed25519_public_key(blob: bytes) -> Any:
    try:
        from cryptography.hazmat.primitives import serialization
        from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
    except Exception as e:  # pragma: no cover
        raise ValueError("Missing crypto dependency for Ed25519 verification (install 'cryptography').") from e

    trimmed = blob.strip()
    try:
        hex_s = trimmed.decode("ascii", errors="strict").strip()
    except UnicodeDecodeError:
        hex_s = ""
    if len(hex_s) == 64 and all(c in "0123456789abcdefABCDEF" for c in hex_s):
        return Ed25519PublicKey.from_public_bytes(bytes.fromhex(hex_s))

    key = serialization.load_pem_public_key(trimmed)
    if not isinstance(key, Ed25519PublicKey):
        raise ValueError("Public key is not Ed25519")
    return key


def seal_payload(payload: dict[str, Any], *, private_key_blob: bytes | None = None) -> dict[str, Any]:
    """Return a copy of payload carrying receipt_hash, and a signature when a key is given."""

    unsigned = unsigned_payload(payload)
    sealed = dict(unsigned)
    sealed["receipt_hash"] = sha256_bytes(canonical_json_bytes(unsigned))
    if private_key_blob is not None:
        key = _load_ed25519_private_key(private_key_blob)
        sealed["signature_alg"] = SIGNATURE_ALG
        sealed["signature"] = key.sign(canonical_json_bytes(unsigned)).hex()
    return sealed


def verify_sealed_payload(payload: dict[str, Any], *, public_key_blob: bytes | None = None) -> None:
    """Raise ValueError unless payload's receipt_hash (and signature, if a key is given) hold."""

    declared = payload.get("receipt_hash")
    if not isinstance(declared, str) or not is_hex_sha256(declared):
        raise ValueError("receipt_hash missing or not 64-hex chars")
    actual = receipt_hash(payload)
    if declared.lower() != actual:
        raise ValueError(f"receipt_hash mismatch: declared={declared} actual={actual}")

    if public_key_blob is None:
        return

    if payload.get("signature_alg") != SIGNATURE_ALG:
        raise ValueError(f"signature_alg must be {SIGNATURE_ALG!r}")
    sig_hex = payload.get("signature")
    if not isinstance(sig_hex, str) or len(sig_hex) != 128:
        raise ValueError("signature missing or not 128-hex chars")
    try:
        sig_bytes = bytes.fromhex(sig_hex)
    except ValueError:
        raise ValueError("signature is not hex") from None

    pub = _load_ed25519_public_key(public_key_blob)
    try:
        pub.verify(sig_bytes, canonical_json_bytes(unsigned_payload(payload)))
    except Exception:
        # cryptography.exceptions.InvalidSignature has an empty string repr
        raise ValueError("Invalid Ed25519 signature (receipt)") from None
