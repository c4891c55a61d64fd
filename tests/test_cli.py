from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

pytestmark = pytest.mark.repo_local


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from inquiry.cli import DEFAULT_TIMEOUT_MS, TIMEOUT_ENV_VAR, default_timeout_ms, load_questionset
from inquiry.cli import main as inquiry_main


QUESTIONSET_SOURCE = '''\
import asyncio

from inquiry import Fail, Pass, Questionset


def old_enough(a):
    return Pass("old enough") if a["age"] > 13 else Fail("not old enough")


def has_name(a):
    return Pass("named") if a.get("name") else Fail("unnamed")


async def looked_up(a):
    await asyncio.sleep(0.01)
    return Pass("looked up")


async def very_slow(a):
    await asyncio.sleep(0.5)
    return Pass("finally")


QUESTIONS = Questionset.of([("old enough?", old_enough), ("has a name?", has_name)])

NOT_QUESTIONS = ["old enough?"]


def async_questions():
    return QUESTIONS.concat(Questionset.of([("looked up?", looked_up)]))


def slow_questions():
    return Questionset.of([("very slow?", very_slow)])
'''

SEED_HEX = "11" * 32


def _write_questionset(tmp_path: Path) -> Path:
    path = tmp_path / "questions.py"
    path.write_text(QUESTIONSET_SOURCE, encoding="utf-8", newline="\n")
    return path


def _read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def _run(tmp_path: Path, attr: str, subject: dict, *extra: str) -> tuple[int, Path]:
    qs_path = _write_questionset(tmp_path)
    out = tmp_path / "out" / "receipt.json"
    rc = inquiry_main(
        [
            "run",
            "--questionset",
            f"{qs_path}:{attr}",
            "--subject-json",
            json.dumps(subject),
            "--out",
            str(out),
            "--run-id",
            "run-test-001",
            "--deterministic",
            *extra,
        ]
    )
    return rc, out


def test_run_go_writes_a_verifiable_receipt(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc, out = _run(tmp_path, "QUESTIONS", {"name": "Ron", "age": 14})
    assert rc == 0

    payload = _read_json(out)
    assert payload["verdict"] == "GO"
    assert payload["run_id"] == "run-test-001"
    assert [e["name"] for e in payload["entries"]] == ["old enough?", "has a name?"]
    assert "verdict: GO" in capsys.readouterr().err

    assert inquiry_main(["receipt", "verify", "--in", str(out)]) == 0


def test_run_no_go_exits_2(tmp_path: Path) -> None:
    rc, out = _run(tmp_path, "QUESTIONS", {"name": "", "age": 10})
    assert rc == 2

    payload = _read_json(out)
    assert payload["verdict"] == "NO-GO"
    assert payload["summary"] == {"questions": 2, "passed": 0, "failed": 2}


def test_selected_questions_run_in_the_given_order(tmp_path: Path) -> None:
    rc, out = _run(
        tmp_path,
        "QUESTIONS",
        {"name": "Ron", "age": 14},
        "--question",
        "has a name?",
        "--question",
        "old enough?",
    )
    assert rc == 0
    assert [e["name"] for e in _read_json(out)["entries"]] == ["has a name?", "old enough?"]


def test_unknown_question_is_a_usage_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc, out = _run(tmp_path, "QUESTIONS", {"name": "Ron", "age": 14}, "--question", "not a question")
    assert rc == 3
    assert not out.exists()
    assert "UnknownQuestion" in capsys.readouterr().err


def test_coroutine_questions_need_async(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc, _ = _run(tmp_path, "async_questions", {"name": "Ron", "age": 14})
    assert rc == 3
    assert "--async" in capsys.readouterr().err

    rc, out = _run(tmp_path, "async_questions", {"name": "Ron", "age": 14}, "--async")
    assert rc == 0
    payload = _read_json(out)
    assert [e["name"] for e in payload["entries"]] == ["old enough?", "has a name?", "looked up?"]
    assert payload["entries"][2]["values"] == ["looked up"]


def test_async_run_times_out(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc, out = _run(tmp_path, "slow_questions", {}, "--async", "--timeout-ms", "20")
    assert rc == 3
    assert not out.exists()
    assert "InquiryTimeout" in capsys.readouterr().err


def test_signed_receipt_roundtrip_and_tamper(tmp_path: Path) -> None:
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

    key_path = tmp_path / "keys" / "receipt.key"
    key_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.write_text(SEED_HEX + "\n", encoding="utf-8", newline="\n")
    pk = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(SEED_HEX)).public_key()
    pub_path = tmp_path / "keys" / "receipt.pub"
    pub_path.write_text(
        pk.public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw).hex() + "\n",
        encoding="utf-8",
        newline="\n",
    )

    rc, out = _run(tmp_path, "QUESTIONS", {"name": "Ron", "age": 14}, "--sign-key", str(key_path))
    assert rc == 0
    assert inquiry_main(["receipt", "verify", "--in", str(out), "--public-key", str(pub_path)]) == 0

    payload = _read_json(out)
    payload["entries"][0]["status"] = "FAIL"
    out.write_text(json.dumps(payload), encoding="utf-8")
    assert inquiry_main(["receipt", "verify", "--in", str(out), "--public-key", str(pub_path)]) == 1


def test_verify_missing_file_is_an_error(tmp_path: Path) -> None:
    assert inquiry_main(["receipt", "verify", "--in", str(tmp_path / "missing.json")]) == 3


def test_bad_questionset_reference(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        load_questionset("no-colon-here")
    with pytest.raises(ValueError):
        load_questionset(f"{tmp_path / 'missing.py'}:QUESTIONS")

    qs_path = _write_questionset(tmp_path)
    with pytest.raises(ValueError):
        load_questionset(f"{qs_path}:NOT_QUESTIONS")
    assert len(load_questionset(f"{qs_path}:async_questions")) == 3

    rc, _ = _run(tmp_path, "MISSING", {"age": 1})
    assert rc == 3


def test_timeout_default_comes_from_the_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(TIMEOUT_ENV_VAR, raising=False)
    assert default_timeout_ms() == DEFAULT_TIMEOUT_MS

    monkeypatch.setenv(TIMEOUT_ENV_VAR, "250")
    assert default_timeout_ms() == 250.0

    monkeypatch.setenv(TIMEOUT_ENV_VAR, "soon")
    with pytest.raises(ValueError):
        default_timeout_ms()


def test_about_and_no_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert inquiry_main(["about"]) == 0
    assert "inquiry-chain" in capsys.readouterr().out
    assert inquiry_main([]) == 3
