import pytest

from formats.arcfile import Entry
from gameres.gameres import EntryNotFoundError
from daybreak.bundlematch import DEFAULT_OVERRIDES, resolve_index

NAMES = [
    "bgm\\opening.ogg", "bgm\\ending.ogg", "se\\click.cnv", "bgm\\titlesemi.sfl",
    "bgm\\titlesemi.ogg", "bgm\\title.sfl", "bgm\\title.ogg", "bg\\title.cnv",
    "bg\\title_night.cnv", "voice\\click.ogg",
]
ENTRIES = [Entry(i, name, 1, 0) for i, name in enumerate(NAMES)]


@pytest.mark.parametrize("path, index", [
    ("title.ogg", 6),
    ("title.wav", 6),
    ("titlesemi.ogg", 4),
    ("TitleSemi.WAV", 4),
    ("title.sfl", 5),
    ("titlesemi.sfl", 3),
])
def test_overrides_come_first(path, index):
    assert resolve_index(path, ENTRIES) == index


def test_exact_stem_beats_substring():
    assert resolve_index("patch/title.bmp", ENTRIES) == 7
    assert resolve_index("title_night.png", ENTRIES) == 8


def test_substring_match():
    assert resolve_index("night.bmp", ENTRIES) == 8
    assert resolve_index("open.ogg", ENTRIES) == 0


def test_extension_decides_candidates():
    assert resolve_index("click.wav", ENTRIES) == 2
    assert resolve_index("click.ogg", ENTRIES) == 9


@pytest.mark.parametrize("path", ["missing.ogg", "click.txt", ".ogg", "opening.bmp"])
def test_no_match(path):
    with pytest.raises(EntryNotFoundError):
        resolve_index(path, ENTRIES)


def test_override_outside_table():
    with pytest.raises(EntryNotFoundError):
        resolve_index("title.ogg", ENTRIES[:3])


def test_custom_overrides_replace_defaults():
    assert resolve_index("title.ogg", ENTRIES, overrides={}) == 6
    assert resolve_index("anything.ogg", ENTRIES, overrides={("anything", ".ogg"): 1}) == 1
    assert ("title", ".sfl") in DEFAULT_OVERRIDES
