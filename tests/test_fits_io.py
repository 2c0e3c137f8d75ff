"""Tests for the FITS container adapter."""

import numpy as np
import pytest

from ccdstage.core.errors import (
    ContainerDecodeError,
    MissingImageHDUError,
    UnsupportedImageEncodingError,
)
from ccdstage.core.fits_io import CANONICAL_DTYPE, DecodedImage, decode, list_hdus, read_header, widen


def test_decode_reads_header_and_image(make_fits):
    path = make_fits("ZnPc81041-00001.fits")
    frame = decode(path)

    assert frame.header["Beamline Energy"] == 500.0
    assert frame.image.shape == (4, 3)
    assert frame.image.data.dtype == CANONICAL_DTYPE
    assert frame.image.flat().tolist() == [float(i) for i in range(12)]


def test_widening_is_lossless_across_encodings(make_fits):
    """The same values stored as int16 and float32 decode to identical matrices."""
    values = np.array([[0, 1, -2], [300, -32768, 32767]])
    a = decode(make_fits("a.fits", image=values.astype(np.int16))).image.data
    b = decode(make_fits("b.fits", image=values.astype(np.float32))).image.data

    assert a.dtype == b.dtype == np.float64
    np.testing.assert_array_equal(a, b)


@pytest.mark.parametrize("dtype", [np.uint8, np.int16, np.uint16, np.int32, np.float32, np.float64])
def test_supported_encodings(make_fits, dtype):
    img = np.arange(6, dtype=dtype).reshape(2, 3)
    frame = decode(make_fits(f"img_{np.dtype(dtype).name}.fits", image=img))
    np.testing.assert_array_equal(frame.image.data, img.astype(np.float64))


def test_falls_back_to_hdu1(make_fits):
    frame = decode(make_fits("fallback.fits", image_hdu=1))
    assert frame.image.shape == (4, 3)


def test_missing_image(make_fits):
    path = make_fits("noimage.fits", image=None)
    with pytest.raises(MissingImageHDUError) as exc:
        decode(path)
    assert str(path) in str(exc.value)


def test_unsupported_int64_payload(make_fits):
    path = make_fits("wide.fits", image=np.arange(6, dtype=np.int64).reshape(2, 3))
    with pytest.raises(UnsupportedImageEncodingError):
        decode(path)


def test_widen_rejects_non_2d():
    with pytest.raises(UnsupportedImageEncodingError):
        widen(np.zeros((2, 2, 2), dtype=np.float32), "cube.fits")


def test_corrupt_container(tmp_path):
    path = tmp_path / "corrupt.fits"
    path.write_bytes(b"this is not a FITS file at all" * 10)
    with pytest.raises(ContainerDecodeError) as exc:
        decode(path)
    assert exc.value.kind == "ContainerDecodeFailure"
    assert str(path) in str(exc.value)


def test_decoded_image_invariants():
    with pytest.raises(ValueError):
        DecodedImage(np.zeros(4, dtype=np.float64))
    with pytest.raises(ValueError):
        DecodedImage(np.zeros((2, 2), dtype=np.float32))


def test_read_header_and_list_hdus(make_fits):
    path = make_fits("ZnPc81041-00001.fits")
    assert read_header(path)["Sample Theta"] == 0.5

    hdus = list_hdus(path)
    assert [h[0] for h in hdus] == [0, 1, 2]
    assert hdus[2][2] == (4, 3)
    assert hdus[1][2] is None
