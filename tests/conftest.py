"""
Shared fixtures: write small but real CCD FITS frames into tmp_path.

Layout matches the beamline files: primary header with HIERARCH cards, an
empty HDU 1 and the detector image at HDU 2.
"""

from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pytest
from astropy.io import fits

from ccdstage.cli import main as cli_main


XRR_HEADER = {
    "Sample Theta": 0.5,
    "CCD Theta": 1.0,
    "Beamline Energy": 500.0,
    "Beam Current": 499.8,
    "EPU Polarization": 100.0,
    "Horizontal Exit Slit Size": 100.0,
    "Higher Order Suppressor": 7.5,
    "EXPOSURE": 0.1,
}


def default_image(dtype=np.uint16, shape=(4, 3)) -> np.ndarray:
    return np.arange(shape[0] * shape[1], dtype=dtype).reshape(shape)


def write_ccd_fits(
    path: Path,
    header: Optional[Dict[str, object]] = None,
    image: Optional[np.ndarray] = None,
    image_hdu: int = 2,
) -> Path:
    """
    Write a CCD frame.

    Args:
        path: Target file
        header: Primary header cards (long keywords become HIERARCH cards)
        image: Detector image; None writes no image at all
        image_hdu: 1 or 2, position of the image extension
    """
    primary = fits.PrimaryHDU()
    for key, value in (XRR_HEADER if header is None else header).items():
        card_key = key if len(key) <= 8 and " " not in key else f"HIERARCH {key}"
        primary.header[card_key] = value

    hdus = [primary]
    if image is not None:
        if image_hdu == 2:
            hdus += [fits.ImageHDU(), fits.ImageHDU(image)]
        else:
            hdus += [fits.ImageHDU(image)]
    path.parent.mkdir(parents=True, exist_ok=True)
    fits.HDUList(hdus).writeto(path, overwrite=True)
    return path



def garble_card(path: Path, keyword: str, text: str) -> Path:
    """Overwrite the 80-byte header card of ``keyword`` with raw ``text``."""
    data = bytearray(path.read_bytes())
    start = data.index(f"HIERARCH {keyword}".encode("ascii"))
    data[start:start + 80] = text.encode("ascii").ljust(80)
    path.write_bytes(bytes(data))
    return path


@pytest.fixture
def make_fits(tmp_path):
    """Factory: make_fits(name, header=None, image=default, image_hdu=2) -> Path."""
    def _make(name: str, header=None, image="default", image_hdu: int = 2, directory: Path = None) -> Path:
        if isinstance(image, str) and image == "default":
            image = default_image()
        return write_ccd_fits((directory or tmp_path) / name, header, image, image_hdu)
    return _make


@pytest.fixture
def xrr_dir(tmp_path, make_fits):
    """
    Directory with three XRR frames of scan 81041; frame 3 has no
    Beamline Energy card.
    """
    d = tmp_path / "ZnPc"
    d.mkdir()
    make_fits("ZnPc81041-00001.fits", directory=d)
    make_fits("ZnPc81041-00002.fits", header={**XRR_HEADER, "Sample Theta": 1.0}, directory=d)
    broken = {k: v for k, v in XRR_HEADER.items() if k != "Beamline Energy"}
    make_fits("ZnPc81041-00003.fits", header=broken, directory=d)
    return d


@pytest.fixture(autouse=True)
def reset_cli_config():
    """The CLI keeps a global config; start every test without one."""
    cli_main.set_config(None)
    yield
    cli_main.set_config(None)
