import sys

import pytest

import main


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    return main.main()


def test_match_exits_zero(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    assert _run(monkeypatch, "--fast", "--seed", "7", "--track", "3") == 0
    out = capsys.readouterr().out
    assert "ACCEPTED" in out
    assert "#3" in out


def test_empty_radius_exits_one(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    assert _run(monkeypatch, "--fast", "--seed", "7", "--max-distance", "0") == 1
    assert "No hay ciclistas" in capsys.readouterr().out


def test_explicit_pickup_is_used(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    assert _run(monkeypatch, "--fast", "--seed", "1", "--lat", "40.4168", "--lng", "-3.7038") == 0
    assert "40.41680, -3.70380" in capsys.readouterr().out


def test_list_activities(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    assert _run(monkeypatch, "--list-activities") == 0
    assert "Ruta deportiva" in capsys.readouterr().out


def test_unexpected_failure_exits_two(monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(main, "run_session", explode)
    assert _run(monkeypatch, "--fast") == 2
