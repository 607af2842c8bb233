#!/usr/bin/env python3
"""
Character Card Sheet Generator

Generates a print-and-cut PDF of character cards (6.1 x 8.7 cm, 3x3 grid per
A4 page) from a canonical character list and a per-language translation
file, followed by an alphabetical overview page.

Usage:
    python character_cards.py --language de --show-name --bg-color "#FFF8DC"

CLI flags:
    -l, --language      Language code; reads <data-dir>/<language>.json (required)
    -n, --show-name     Print the character name on each card
    -so, --skip-overview Do not append the overview page
    -d, --dry-run       Render only the first card and no overview
    --bg-color          Inner panel color, '#RRGGBB' (default: #F5F5DC)
    --text-color        Text and panel border color, '#RRGGBB' (default: #000000)
    --spacing           Extra space between cards in cm (default: 0)
    --data-dir          Directory holding characters.json and the language files
    --font              TTF font path (default: fonts/Farro-Regular.ttf, else Helvetica)
    --outdir            Directory for characters_<language>.pdf (default: .)

Input JSON schema:
    characters.json   [{"id": "alchemist"}, ...]            (card order)
    <language>.json   {"alchemist": {"name": "...", "ability": "..."}, ...}

A character without a translation is printed with its id as name and an
empty ability.

Dependencies:
    - reportlab
    - Pillow
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from reportlab.platypus.doctemplate import LayoutError

from card_config import DEFAULT_BG_COLOR, DEFAULT_TEXT_COLOR, resolve_config, resolve_fonts
from card_render import CharacterRecord, DeckError, output_filename, render_deck

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
CHARACTERS_FILE = "characters.json"

log = logging.getLogger("character_cards")


def load_json(path: str):
    if not os.path.isfile(path):
        raise DeckError(f"{os.path.basename(path)} not found in {os.path.dirname(path) or '.'}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DeckError(f"{path} is not valid UTF-8 JSON: {e}") from e
    except OSError as e:
        raise DeckError(f"Cannot read {path}: {e}") from e


def load_deck(language: str, data_dir: str = DEFAULT_DATA_DIR) -> List[CharacterRecord]:
    """Join the canonical character list with the translations for language."""
    characters = load_json(os.path.join(data_dir, CHARACTERS_FILE))
    translations = load_json(os.path.join(data_dir, f"{language}.json"))
    if not isinstance(characters, list):
        raise DeckError(f"{CHARACTERS_FILE} must contain a list of characters")
    if not isinstance(translations, dict):
        raise DeckError(f"{language}.json must map character ids to translations")

    deck: List[CharacterRecord] = []
    for i, entry in enumerate(characters):
        char_id = entry.get("id") if isinstance(entry, dict) else None
        if char_id is None or char_id == "":
            raise DeckError(f"Character index {i} in {CHARACTERS_FILE} has no id")
        char_id = str(char_id)
        details = translations.get(char_id)
        if not isinstance(details, dict):
            log.debug("No %s translation for '%s'", language, char_id)
            details = {}
        deck.append(
            CharacterRecord(
                id=char_id,
                display_name=details.get("name") or char_id,
                ability_text=details.get("ability") or "",
            )
        )
    return deck


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Character Card Sheet Generator")
    parser.add_argument("-l", "--language", required=True, help="Language code (e.g. de)")
    parser.add_argument("-n", "--show-name", action="store_true", help="Show character name on card")
    parser.add_argument("-so", "--skip-overview", action="store_true", help="Do not print overview page")
    parser.add_argument("-d", "--dry-run", action="store_true", help="Dry run: print only one card and no overview")
    parser.add_argument("--bg-color", default=DEFAULT_BG_COLOR, help="Inner panel background color (hex)")
    parser.add_argument("--text-color", default=DEFAULT_TEXT_COLOR, help="Text and panel border color (hex)")
    parser.add_argument("--spacing", default="0", help="Additional spacing between cards in cm")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help="Directory with characters.json and language files")
    parser.add_argument("--font", default=None, help="TTF font path for card text")
    parser.add_argument("--outdir", default=".", help="Directory to save the PDF")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every rendered card")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    config = resolve_config(
        args.language,
        show_name=args.show_name,
        skip_overview=args.skip_overview,
        dry_run=args.dry_run,
        bg_color=args.bg_color,
        text_color=args.text_color,
        spacing=args.spacing,
        log=log,
    )
    fonts = resolve_fonts(args.font, log=log)

    try:
        deck = load_deck(config.language, args.data_dir)
        log.info("Loaded %d characters for language '%s'", len(deck), config.language)
        os.makedirs(args.outdir, exist_ok=True)
        outfile = os.path.join(args.outdir, output_filename(config.language))
        render_deck(deck, config, fonts, outfile, log=log)
    except DeckError as e:
        log.error("Cannot render characters: %s", e)
        return 1
    except LayoutError as e:
        log.error("Cannot lay out the overview page: %s", e)
        return 1
    except OSError as e:
        log.error("Cannot write PDF: %s", e)
        return 1

    log.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
