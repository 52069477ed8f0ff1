"""Tests for the wic-benefits command line."""

import json

import pytest

from wic.benefits.cli import main
from wic.benefits.seed import CARD_NUMBERS

LIGHT = CARD_NUMBERS["light"]
HEAVY = CARD_NUMBERS["heavy"]


@pytest.fixture
def seeded(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("WIC_BENEFITS_DB", str(tmp_path / "cli.db"))
    monkeypatch.delenv("OPENFOODFACTS_USER_AGENT", raising=False)
    main(["seed"])
    capsys.readouterr()


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1
    assert "wic-benefits" in capsys.readouterr().out


def test_seed_output(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("WIC_BENEFITS_DB", str(tmp_path / "cli.db"))
    main(["seed"])
    out = capsys.readouterr().out
    assert "stores" in out
    assert "benefits" in out


def test_benefits_json(seeded, capsys):
    main(["benefits", LIGHT, "--json"])
    data = json.loads(capsys.readouterr().out)
    assert [b["category"] for b in data] == [
        "dairy", "grains", "protein", "fruits", "vegetables",
    ]
    assert data[0]["remaining"] == 3.5
    assert data[0]["unit"] == "gallons"


def test_benefits_text(seeded, capsys):
    main(["benefits", HEAVY])
    out = capsys.readouterr().out
    assert "0.5 gallons" in out
    assert "$1.50" in out


def test_benefits_unknown_card(seeded, capsys):
    main(["benefits", "0000000000"])
    assert "No benefits" in capsys.readouterr().out


def test_purchase_and_history(seeded, capsys):
    main(["purchase", LIGHT, "dairy", "0.5", "gallons", "--product", "Whole Milk"])
    assert "Purchase recorded" in capsys.readouterr().out

    main(["history", LIGHT])
    out = capsys.readouterr().out
    assert "Whole Milk" in out
    assert "0.5 gallons" in out


def test_purchase_rejected(seeded, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["purchase", HEAVY, "dairy", "1", "gallons"])
    assert exc.value.code == 1
    assert "insufficient_benefit" in capsys.readouterr().err


def test_scan_wrong_size_json(seeded, capsys):
    main(["scan", "011110123456", "--card", LIGHT, "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["status"] == "not_approved"
    assert data["reason"] == "wrong_size"
    assert data["suggestion"]


def test_scan_and_buy(seeded, capsys):
    main(["scan", "011110123460", "--card", LIGHT, "--buy"])
    out = capsys.readouterr().out
    assert "✅" in out
    assert "Purchase recorded" in out

    main(["benefits", LIGHT, "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data[0]["remaining"] == 3.0


def test_scan_unknown_code(seeded, capsys):
    main(["scan", "999999999999", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["found"] is False
    assert data["reason"] == "not_found"


def test_stores_by_zip(seeded, capsys):
    main(["stores", "--zip", "17401"])
    out = capsys.readouterr().out
    assert "Walmart Supercenter" in out
    assert "ALDI" not in out


def test_rollover_requires_card(seeded, capsys):
    with pytest.raises(SystemExit):
        main(["rollover"])
    assert "--all" in capsys.readouterr().err


def test_rollover_all(seeded, capsys):
    main(["rollover", "--all", "--from", "2020-01", "--to", "2020-02"])
    assert "0 card(s)" in capsys.readouterr().out


def test_scheduler_disabled(seeded, capsys):
    with pytest.raises(SystemExit):
        main(["scheduler"])
    assert "disabled" in capsys.readouterr().err
