import pytest

from formats.fileview import FileView
from gameres.gameres import (BundleIOError, CapacityError, FormatCatalog,
                             InvalidFormatException)
from gameres.utility import BinarySaver, get_fixed_string, put_fixed_string
from daybreak import bundleunpack  # registers the container formats
from daybreak.audiocnv import CnvAudioFormat
from daybreak.imagecnv import CnvImageFormat


def test_error_carries_stage():
    err = CapacityError("too big", stage="validate")
    assert err.stage == "validate"
    assert str(err) == "validate: too big"
    assert str(InvalidFormatException("plain")) == "plain"


def test_catalog_dispatches_on_first_byte():
    assert bundleunpack.CONTAINER_SUFFIX == ".cnv"
    assert isinstance(FormatCatalog.from_data(b"\x01rest"), CnvAudioFormat)
    assert isinstance(FormatCatalog.from_data(b"\x18rest"), CnvImageFormat)
    assert isinstance(FormatCatalog.from_data(b"\x20rest", expected_type="image"), CnvImageFormat)
    assert FormatCatalog.from_data(b"\x20rest", expected_type="audio") is None
    assert FormatCatalog.from_data(b"\x02") is None
    assert FormatCatalog.from_data(b"") is None


def test_catalog_ignores_duplicate_registration():
    count = len(FormatCatalog.formats)
    FormatCatalog.add_format(CnvImageFormat())
    assert len(FormatCatalog.formats) == count


def test_fixed_string_round_trip():
    field = put_fixed_string("テスト.txt", 32)
    assert len(field) == 32 and field.endswith(b"\x00")
    assert get_fixed_string(field, 0, 32) == "テスト.txt"


def test_file_view_reads_exactly(tmp_path):
    path = tmp_path / "v.bin"
    path.write_bytes(b"0123456789")
    with FileView(str(path)) as view:
        assert view.size == 10
        assert view.read_at(2, 3) == b"234"
        assert view.read_at(10, 0) == b""
        with pytest.raises(InvalidFormatException):
            view.read_at(8, 3)
    assert view.file.closed


def test_file_view_missing_file(tmp_path):
    with pytest.raises(BundleIOError) as info:
        FileView(str(tmp_path / "none.dat"))
    assert isinstance(info.value.__cause__, OSError)


def test_binary_saver_creates_directories(tmp_path):
    target = tmp_path / "a" / "b" / "c.bin"
    BinarySaver.save("c.bin", b"xyz", str(target))
    assert target.read_bytes() == b"xyz"
    assert BinarySaver.replace_suffix("x/Y.CNV", ".cnv", ".bmp") == "x/Y.bmp"
    assert BinarySaver.replace_suffix("x/y.txt", ".cnv", ".bmp") is None
