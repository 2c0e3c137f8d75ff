"""
FITS container adapter.

Thin layer over ``astropy.io.fits``: returns the primary header and the
detector image of a CCD frame, with the image widened to one canonical
numeric type so downstream code never sees the on-disk encoding.

Layout assumed:
    HDU 0   primary header (scalar metadata, no image)
    HDU 2   detector image (canonical position)
    HDU 1   detector image (fallback, some acquisition modes write it here)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from astropy.io import fits
from astropy.io.fits.verify import VerifyError

from .errors import (
    ContainerDecodeError,
    IngestionError,
    MissingImageHDUError,
    UnsupportedImageEncodingError,
)

CANONICAL_DTYPE = np.dtype(np.float64)

IMAGE_HDU = 2
FALLBACK_IMAGE_HDU = 1

# (kind, itemsize) pairs; unsigned 16/32-bit are astropy's BZERO view of signed payloads
SUPPORTED_ENCODINGS = frozenset({
    ("u", 1),
    ("i", 2),
    ("u", 2),
    ("i", 4),
    ("u", 4),
    ("f", 4),
    ("f", 8),
})

_DECODE_ERRORS = (OSError, EOFError, ValueError, TypeError, KeyError, IndexError, VerifyError)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class DecodedImage:
    """
    Detector frame in canonical form.

    Attributes:
        data: 2-D array of dtype CANONICAL_DTYPE
    """
    data: np.ndarray

    def __post_init__(self):
        if self.data.ndim != 2:
            raise ValueError(f"expected a 2-D image, got {self.data.ndim}-D")
        if self.data.dtype != CANONICAL_DTYPE:
            raise ValueError(f"expected {CANONICAL_DTYPE} image, got {self.data.dtype}")

    @property
    def shape(self) -> Tuple[int, int]:
        rows, cols = self.data.shape
        return int(rows), int(cols)

    @property
    def rows(self) -> int:
        return self.shape[0]

    @property
    def cols(self) -> int:
        return self.shape[1]

    def flat(self) -> np.ndarray:
        """Row-major flattened view of the image."""
        return self.data.ravel(order="C")


@dataclass(frozen=True)
class DecodedFits:
    path: str
    header: fits.Header
    image: DecodedImage


def widen(data: np.ndarray, path: PathLike) -> np.ndarray:
    """
    Upcast a raw FITS payload to CANONICAL_DTYPE.

    Raises:
        UnsupportedImageEncodingError: For element types outside
            SUPPORTED_ENCODINGS or payloads that are not 2-D
    """
    dtype = np.dtype(data.dtype)
    if (dtype.kind, dtype.itemsize) not in SUPPORTED_ENCODINGS:
        raise UnsupportedImageEncodingError(path, f"dtype {dtype.str}")
    if data.ndim != 2:
        raise UnsupportedImageEncodingError(path, f"{data.ndim}-D payload")
    return np.ascontiguousarray(data, dtype=CANONICAL_DTYPE)


def _image_at(hdul: fits.HDUList, index: int) -> Optional[np.ndarray]:
    if index >= len(hdul):
        return None
    hdu = hdul[index]
    if not isinstance(hdu, (fits.ImageHDU, fits.CompImageHDU)):
        return None
    return hdu.data


def locate_image(hdul: fits.HDUList) -> Optional[np.ndarray]:
    """Image payload at IMAGE_HDU, else FALLBACK_IMAGE_HDU, else None."""
    data = _image_at(hdul, IMAGE_HDU)
    if data is None:
        data = _image_at(hdul, FALLBACK_IMAGE_HDU)
    return data


def decode(path: PathLike) -> DecodedFits:
    """
    Open a CCD FITS file and return its primary header and widened image.

    Args:
        path: Path to a .fits file

    Returns:
        DecodedFits with a detached copy of the primary header

    Raises:
        MissingImageHDUError: No image at either candidate position
        UnsupportedImageEncodingError: Image element type not supported
        ContainerDecodeError: The container could not be opened or read

    Example:
        >>> frame = decode("ZnPc81041-00007.fits")
        >>> frame.image.shape
        (2048, 2048)
        >>> frame.header["Beamline Energy"]
        283.7
    """
    path = Path(path)
    try:
        with fits.open(path, memmap=False) as hdul:
            header = hdul[0].header.copy()
            raw = locate_image(hdul)
            if raw is None:
                raise MissingImageHDUError(path)
            image = DecodedImage(widen(raw, path))
    except IngestionError:
        raise
    except _DECODE_ERRORS as exc:
        raise ContainerDecodeError(path, exc) from exc
    return DecodedFits(path=str(path), header=header, image=image)


def read_header(path: PathLike) -> fits.Header:
    """Primary header only; the image payload is not read."""
    path = Path(path)
    try:
        with fits.open(path, memmap=False) as hdul:
            return hdul[0].header.copy()
    except _DECODE_ERRORS as exc:
        raise ContainerDecodeError(path, exc) from exc


def list_hdus(path: PathLike) -> List[Tuple[int, str, Optional[Tuple[int, ...]], Optional[str]]]:
    """(index, name, shape, dtype) for every HDU, for inspection output."""
    path = Path(path)
    try:
        with fits.open(path, memmap=False) as hdul:
            out = []
            for i, hdu in enumerate(hdul):
                data = hdu.data if hdu.is_image else None
                shape = tuple(int(n) for n in data.shape) if data is not None else None
                dtype = np.dtype(data.dtype).name if data is not None else None
                out.append((i, hdu.name, shape, dtype))
            return out
    except _DECODE_ERRORS as exc:
        raise ContainerDecodeError(path, exc) from exc
