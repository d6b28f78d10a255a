import os

import numpy as np
import pytest

from conftest import build_bundle, make_cnv_image
from gameres.gameres import EntryNotFoundError, InvalidFormatException
from gameres.imagebmp import BmpFormat
from daybreak.bundleunpack import (convert_entry, describe_entry, entry_output_path,
                                   extract_bundle, extract_single, list_bundle, open_bundle)
from daybreak.options import ExtractOptions, ImageOutput


def test_list_reports_table_order(bundle):
    path, entries, _ = bundle
    listed = list_bundle(path)
    assert listed == entries
    by_name = list_bundle(path, sort_by_name=True)
    assert [e.name for e in by_name] == sorted(e.name for e in entries)
    # sorted view leaves table order alone
    assert list_bundle(path) == entries


def test_open_entry_decrypts(bundle):
    path, entries, members = bundle
    with open_bundle(path) as archive:
        for entry, (_, data) in zip(archive.entries, members):
            assert archive.open_entry(entry) == data
        assert archive.find("bgm\\title.ogg").index == 3
        assert archive.find("missing") is None


def test_extract_all(tmp_path, bundle, pixels):
    path, _, members = bundle
    out = tmp_path / "out"
    results = extract_bundle(path, str(out))

    assert [r.status for r in results] == ["raw", "converted", "converted", "raw", "fallback", "fallback"]
    assert (out / "data" / "script.txt").read_bytes() == b"hello bundle"
    assert (out / "bgm" / "title.ogg").read_bytes() == members[3][1]

    image = BmpFormat().read((out / "bg" / "title.bmp").read_bytes())
    assert np.array_equal(image.pixels, pixels)
    assert (out / "se" / "click.wav").read_bytes()[:4] == b"RIFF"

    # failed conversion falls back to the decrypted bytes and the next entry still runs
    assert (out / "bad" / "broken.unknown").read_bytes() == members[4][1]
    assert (out / "misc" / "odd.unknown").read_bytes() == members[5][1]
    assert results[4].error is not None and not results[4].ok
    assert not (out / "bg" / "title.cnv").exists()


def test_extract_with_pattern(tmp_path, bundle):
    path, _, _ = bundle
    results = extract_bundle(path, str(tmp_path / "out"), pattern=r"\.ogg$")
    assert [r.name for r in results] == ["bgm\\title.ogg"]


def test_extract_passthrough_and_png(tmp_path, bundle, pixels):
    path, _, members = bundle
    out = tmp_path / "raw"
    extract_bundle(path, str(out), pattern="title.cnv",
                   options=ExtractOptions(image_output=ImageOutput.PASSTHROUGH))
    assert (out / "bg" / "title.cnv").read_bytes() == members[1][1]

    out = tmp_path / "png"
    extract_bundle(path, str(out), pattern="title.cnv",
                   options=ExtractOptions(image_output=ImageOutput.PNG))
    assert (out / "bg" / "title.png").read_bytes()[:4] == b"\x89PNG"


def test_extract_keeps_audio_when_asked(tmp_path, bundle):
    path, _, members = bundle
    out = tmp_path / "out"
    extract_bundle(path, str(out), pattern="click", options=ExtractOptions(convert_audio=False))
    assert (out / "se" / "click.cnv").read_bytes() == members[2][1]


def test_extract_single_renames_only_cnv_paths(tmp_path, bundle):
    path, _, _ = bundle
    result = extract_single(path, 1, str(tmp_path / "picked.cnv"))
    assert result.output_path == str(tmp_path / "picked.bmp")
    assert os.path.exists(result.output_path)

    result = extract_single(path, 2, str(tmp_path / "sound.bin"))
    assert result.output_path == str(tmp_path / "sound.bin")
    assert (tmp_path / "sound.bin").read_bytes()[:4] == b"RIFF"

    with pytest.raises(EntryNotFoundError):
        extract_single(path, 99, str(tmp_path / "x"))


def test_short_payload_is_fatal(tmp_path):
    path = tmp_path / "cut.dat"
    build_bundle(path, [("a.txt", b"0123456789")])
    with open(path, "r+b") as f:
        f.truncate(os.path.getsize(path) - 4)
    with pytest.raises(InvalidFormatException):
        extract_bundle(str(path), str(tmp_path / "out"))


def test_truncated_table_fails_before_listing(tmp_path):
    path = tmp_path / "t.dat"
    build_bundle(path, [("a.txt", b"x"), ("b.txt", b"y")])
    data = path.read_bytes()
    path.write_bytes(data[:300])
    with pytest.raises(InvalidFormatException):
        list_bundle(str(path))


def test_convert_entry_rejects_unknown_discriminator():
    with pytest.raises(InvalidFormatException):
        convert_entry(b"\x05abc")
    with pytest.raises(InvalidFormatException):
        convert_entry(b"")


def test_convert_entry_image(pixels):
    data, suffix = convert_entry(make_cnv_image(pixels))
    assert suffix == ".bmp" and data[:2] == b"BM"


def test_entry_output_path_rejects_escape(tmp_path):
    assert entry_output_path(str(tmp_path), "a\\b.txt") == os.path.join(str(tmp_path), "a", "b.txt")
    with pytest.raises(InvalidFormatException):
        entry_output_path(str(tmp_path), "..\\evil.txt")


def test_describe_entry():
    assert describe_entry("bg\\title.CNV") == "Image or audio file (will be converted)"
    assert describe_entry("readme.txt") == "Text File"
    assert describe_entry("title.sfl") == "Temporary audio file made by vegas."
    assert describe_entry("model.x").startswith("Binary directx")
    assert describe_entry("noext") == "Unknown"


def test_empty_image_falls_back_for_png_output(tmp_path):
    path = tmp_path / "empty.dat"
    empty = make_cnv_image(np.zeros((0, 4, 4), dtype=np.uint8))
    build_bundle(path, [("a.cnv", empty), ("b.txt", b"next")])
    out = tmp_path / "out"
    results = extract_bundle(str(path), str(out),
                             options=ExtractOptions(image_output=ImageOutput.PNG))

    assert [r.status for r in results] == ["fallback", "raw"]
    assert results[0].error.stage == "encode"
    assert (out / "a.unknown").read_bytes() == empty
    assert (out / "b.txt").read_bytes() == b"next"


def test_invalid_pattern_is_a_format_error(bundle, tmp_path):
    path, _, _ = bundle
    with pytest.raises(InvalidFormatException) as info:
        extract_bundle(path, str(tmp_path / "out"), pattern="(")
    assert info.value.stage == "validate"
