import json

import pytest
from reportlab.platypus.doctemplate import LayoutError

import card_render
from card_render import DeckError
from character_cards import load_deck, main


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "characters.json").write_text(json.dumps([{"id": "golem"}, {"id": "hermit"}, {"id": "oracle"}]))
    (tmp_path / "en.json").write_text(
        json.dumps(
            {
                "golem": {"name": "Golem", "ability": "Nobody passes."},
                "oracle": {"name": "Oracle"},
            }
        )
    )
    return tmp_path


def test_load_deck_joins_translations_in_canonical_order(data_dir):
    deck = load_deck("en", str(data_dir))
    assert [ch.id for ch in deck] == ["golem", "hermit", "oracle"]
    assert deck[0].display_name == "Golem"
    assert deck[0].ability_text == "Nobody passes."


def test_missing_translation_falls_back_to_id(data_dir):
    deck = load_deck("en", str(data_dir))
    assert deck[1].display_name == "hermit"
    assert deck[1].ability_text == ""
    assert deck[2].ability_text == ""


def test_missing_language_file(data_dir):
    with pytest.raises(DeckError, match="xx.json"):
        load_deck("xx", str(data_dir))


def test_character_without_id(data_dir):
    (data_dir / "characters.json").write_text(json.dumps([{"id": "golem"}, {"name": "anonymous"}]))
    with pytest.raises(DeckError, match="index 1"):
        load_deck("en", str(data_dir))


def test_malformed_json(data_dir):
    (data_dir / "en.json").write_text("{not json")
    with pytest.raises(DeckError):
        load_deck("en", str(data_dir))


def test_bundled_data_loads():
    deck = load_deck("en")
    assert deck
    assert all(ch.ability_text for ch in deck)


def test_main_writes_pdf(data_dir, tmp_path):
    outdir = tmp_path / "out"
    code = main(["-l", "en", "-n", "--data-dir", str(data_dir), "--outdir", str(outdir), "--bg-color", "#zzz"])
    assert code == 0
    assert (outdir / "characters_en.pdf").read_bytes().startswith(b"%PDF")


def test_main_fails_on_missing_language(data_dir, tmp_path):
    assert main(["-l", "fr", "--data-dir", str(data_dir), "--outdir", str(tmp_path)]) == 1
    assert not (tmp_path / "characters_fr.pdf").exists()


def test_main_requires_language():
    with pytest.raises(SystemExit):
        main([])


def test_invalid_utf8_translation_fails_cleanly(data_dir, tmp_path):
    (data_dir / "en.json").write_bytes(b'{"golem": {"name": "G\xff"}}')
    with pytest.raises(DeckError, match="UTF-8"):
        load_deck("en", str(data_dir))
    assert main(["-l", "en", "--data-dir", str(data_dir), "--outdir", str(tmp_path)]) == 1


def test_unreadable_data_file_is_a_data_error(data_dir, monkeypatch):
    real_open = open

    def deny(path, *args, **kwargs):
        if str(path).endswith("en.json"):
            raise PermissionError(13, "Permission denied", str(path))
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr("builtins.open", deny)
    with pytest.raises(DeckError, match="Cannot read"):
        load_deck("en", str(data_dir))


def test_overview_layout_failure_returns_error(data_dir, tmp_path, monkeypatch, caplog):
    def too_tall(*args, **kwargs):
        raise LayoutError("row too tall")

    monkeypatch.setattr(card_render, "draw_overview", too_tall)
    assert main(["-l", "en", "--data-dir", str(data_dir), "--outdir", str(tmp_path)]) == 1
    assert "overview" in caplog.text
    assert not (tmp_path / "characters_en.pdf").exists()


def test_short_skip_overview_flag(data_dir, tmp_path, monkeypatch):
    calls = []

    def no_overview(*args, **kwargs):
        calls.append(args)
        return 1

    monkeypatch.setattr(card_render, "draw_overview", no_overview)
    assert main(["-l", "en", "-so", "--data-dir", str(data_dir), "--outdir", str(tmp_path)]) == 0
    assert calls == []
    assert (tmp_path / "characters_en.pdf").exists()
