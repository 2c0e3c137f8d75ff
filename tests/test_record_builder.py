"""Tests for per-file record building."""

import os

import numpy as np
import polars as pl
import pytest

from ccdstage.core.catalog import ExperimentType
from ccdstage.core.derived import q_value
from ccdstage.core.errors import (
    InvalidHeaderValueError,
    InvalidUtf8PathError,
    MissingHeaderFieldError,
    NotAFitsFileError,
    UnsupportedImageEncodingError,
)
from ccdstage.core.record_builder import RAW_COLUMN, RAW_SHAPE_COLUMN, build, build_frame, check_path

from conftest import XRR_HEADER, garble_card


def test_build_xrr_record(make_fits):
    path = make_fits("ZnPc_rt81041-00007.fits")
    record = build(path, ExperimentType.XRR.keys())

    assert list(record.values) == ExperimentType.XRR.names()
    assert record.values["Beamline Energy [eV]"] == 500.0
    assert record.image.shape == (4, 3)
    assert record.frame.sample_name == "ZnPc"
    assert record.frame.tag == "rt"
    assert record.frame.scan_id == 81041
    assert record.frame.frame_number == 7


def test_frame_layout(make_fits):
    df = build_frame(make_fits("ZnPc81041-00001.fits"), ExperimentType.XRS.keys())

    assert df.height == 1
    assert df.columns == [
        "Beamline Energy [eV]", RAW_COLUMN, RAW_SHAPE_COLUMN,
        "file_name", "file_path", "sample_name", "tag", "scan_id", "frame_number",
    ]
    assert df.schema[RAW_COLUMN] == pl.List(pl.Int64)
    assert df.schema[RAW_SHAPE_COLUMN] == pl.List(pl.Int64)
    assert df.schema["scan_id"] == pl.Int64
    assert df[RAW_SHAPE_COLUMN][0].to_list() == [4, 3]
    assert len(df[RAW_COLUMN][0]) == 12


def test_missing_field_names_field_and_path(make_fits):
    header = {k: v for k, v in XRR_HEADER.items() if k != "Beamline Energy"}
    path = make_fits("ZnPc81041-00003.fits", header=header)

    with pytest.raises(MissingHeaderFieldError) as exc:
        build(path, "xrr")
    assert exc.value.field == "Beamline Energy"
    assert "Beamline Energy" in str(exc.value)
    assert str(path) in str(exc.value)


def test_non_numeric_value(make_fits):
    path = make_fits("text.fits", header={**XRR_HEADER, "Beamline Energy": "n/a"})
    with pytest.raises(InvalidHeaderValueError):
        build(path, "xrs")


def test_q_as_requested_field(make_fits):
    record = build(make_fits("q.fits"), ["Q", "Sample Theta"])
    assert list(record.values) == ["Q [A^-1]", "Sample Theta [deg]"]
    assert record.values["Q [A^-1]"] == pytest.approx(q_value(0.5, 500.0), rel=1e-12)


def test_q_with_zero_energy(make_fits):
    path = make_fits("zero.fits", header={**XRR_HEADER, "Beamline Energy": 0.0})
    with pytest.raises(InvalidHeaderValueError):
        build(path, ["Q"])


def test_empty_fields_stage_every_numeric_card(make_fits):
    record = build(make_fits("all.fits", header={"Sample Theta": 0.5, "NOTE": "text", "EXPOSURE": 2}))
    assert record.values["Sample Theta"] == 0.5
    assert record.values["EXPOSURE"] == 2.0
    assert "NOTE" not in record.values


def test_not_a_fits_extension(tmp_path):
    path = tmp_path / "frame.fit"
    path.write_bytes(b"")
    with pytest.raises(NotAFitsFileError):
        build(path, "xrr")


def test_raw_float_payload_is_rounded(make_fits):
    image = np.array([[0.4, 1.6], [2.5, -1.5]], dtype=np.float32)
    df = build_frame(make_fits("float.fits", image=image), "xrs")

    assert df.schema[RAW_COLUMN] == pl.List(pl.Int64)
    assert df[RAW_COLUMN][0].to_list() == [0, 2, 2, -2]


def test_raw_non_finite_payload(make_fits):
    image = np.array([[1.0, np.nan]], dtype=np.float64)
    with pytest.raises(UnsupportedImageEncodingError):
        build_frame(make_fits("nan.fits", image=image), "xrs")


def test_unsigned_payload_keeps_exact_values(make_fits):
    image = np.array([[0, 65535], [40000, 1]], dtype=np.uint16)
    df = build_frame(make_fits("u16.fits", image=image), "xrs")
    assert df[RAW_COLUMN][0].to_list() == [0, 65535, 40000, 1]


def test_garbled_requested_card(make_fits):
    path = garble_card(make_fits("bad-00002.fits"), "Beamline Energy",
                       "HIERARCH Beamline Energy = 5.0.0.0 junk junk")
    with pytest.raises(InvalidHeaderValueError) as exc:
        build(path, "xrr")
    assert exc.value.field == "Beamline Energy"


def test_garbled_card_skipped_when_staging_every_card(make_fits):
    path = garble_card(make_fits("bad-00002.fits"), "Beamline Energy",
                       "HIERARCH Beamline Energy = 5.0.0.0 junk junk")
    record = build(path)
    assert record.values["Sample Theta"] == 0.5
    assert not any(k.upper().startswith("BEAMLINE ENERGY") for k in record.values)


@pytest.mark.parametrize("raw", [os.fsdecode(b"bad\xff-00001.fits"), b"bad\xff-00001.fits"])
def test_undecodable_path(raw):
    with pytest.raises(InvalidUtf8PathError) as exc:
        check_path(raw)
    assert exc.value.kind == "InvalidUtf8Path"
    assert exc.value.path == "bad\\udcff-00001.fits"
