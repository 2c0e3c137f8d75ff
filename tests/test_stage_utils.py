"""Tests for filename and header-value parsing helpers."""

import pytest
from astropy.io import fits

from ccdstage.core.stage_utils import (
    has_fits_suffix,
    header_float,
    numeric_cards,
    parse_frame_name,
    parse_number_unit,
)


@pytest.mark.parametrize(
    "name, sample, tag, scan, frame",
    [
        ("ZnPc81041-00007.fits", "ZnPc", None, 81041, 7),
        ("/data/run/ZnPc_rt81041-00007.fits", "ZnPc", "rt", 81041, 7),
        ("C60_81041-00001.fits", "C60", None, 81041, 1),
        ("mono 92345-00010.fits", "mono", None, 92345, 10),
    ],
)
def test_parse_frame_name(name, sample, tag, scan, frame):
    parsed = parse_frame_name(name)
    assert parsed.sample_name == sample
    assert parsed.tag == tag
    assert parsed.scan_id == scan
    assert parsed.frame_number == frame
    assert parsed.parsed


def test_unparseable_name_keeps_stem_as_sample():
    parsed = parse_frame_name("beam_check.fits")
    assert parsed.file_name == "beam_check"
    assert parsed.sample_name == "beam_check"
    assert parsed.scan_id is None
    assert parsed.frame_number is None
    assert not parsed.parsed


def test_name_without_sample():
    parsed = parse_frame_name("81041-00007.fits")
    assert parsed.sample_name is None
    assert parsed.frame_number == 7


def test_parse_number_unit():
    assert parse_number_unit("100ms") == (100.0, "ms")
    assert parse_number_unit(42) == (42.0, None)
    assert parse_number_unit("1.5e-3 s") == (0.0015, "s")
    assert parse_number_unit("invalid") == (None, None)
    assert parse_number_unit(None) == (None, None)


def test_header_float_rejects_booleans():
    assert header_float(True) is None
    assert header_float("283.7 eV") == 283.7


def test_numeric_cards_skips_commentary_and_text():
    header = fits.Header()
    header["HIERARCH Sample Theta"] = 0.5
    header["OBJECT"] = "ZnPc"
    header["FLAG"] = True
    header["NFRAMES"] = 3
    header["COMMENT"] = "not a value"

    cards = numeric_cards(header)

    assert cards == {"Sample Theta": 0.5, "NFRAMES": 3.0}


def test_has_fits_suffix():
    assert has_fits_suffix("a.fits")
    assert not has_fits_suffix("A.FITS")
    assert not has_fits_suffix("a.fit")
    assert not has_fits_suffix("a.fits.gz")
