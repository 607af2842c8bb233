import pytest

from card_config import RenderConfig
from card_render import CharacterRecord


def make_deck(count, ability="x" * 40):
    return [CharacterRecord(id=f"a{i}", display_name=f"A{i}", ability_text=ability) for i in range(count)]


@pytest.fixture
def config():
    return RenderConfig(language="en")
