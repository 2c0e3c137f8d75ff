"""
Per-file record builder.

Turns one CCD FITS file into exactly one table row: requested header values,
the flattened image with its shape, and identifiers parsed from the file
name. Every failure is raised as an ``IngestionError`` naming the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Union

import numpy as np
import polars as pl
from astropy.io.fits.verify import VerifyError

from .catalog import BEAMLINE_ENERGY, Q, SAMPLE_THETA, HeaderField, resolve_fields
from .derived import q_value
from .errors import (
    InvalidHeaderValueError,
    InvalidUtf8PathError,
    MissingHeaderFieldError,
    NotAFitsFileError,
    TableConstructionError,
    UnsupportedImageEncodingError,
)
from .fits_io import DecodedImage, decode
from .stage_utils import (
    FrameName,
    has_fits_suffix,
    header_float,
    is_utf8_path,
    numeric_cards,
    parse_frame_name,
)

RAW_COLUMN = "Raw"
RAW_SHAPE_COLUMN = "Raw Shape"
FILE_COLUMNS = ("file_name", "file_path", "sample_name", "tag", "scan_id", "frame_number")

_MISSING = object()
# float64 bounds that convert to int64 without overflow
_INT64_MIN = -(2.0 ** 63)
_INT64_MAX = 2.0 ** 63 - 1024


def integer_pixels(image: DecodedImage, path: Union[str, Path]) -> np.ndarray:
    """
    Flattened image as int64 for the Raw column.

    Integer encodings convert exactly. Float payloads are rounded to the
    nearest integer (ties to even, ``np.rint``).

    Raises:
        UnsupportedImageEncodingError: NaN, infinite or out-of-range pixels
    """
    flat = image.flat()
    if not np.isfinite(flat).all():
        raise UnsupportedImageEncodingError(path, "non-finite pixel values")
    rounded = np.rint(flat)
    if flat.size and (rounded.min() < _INT64_MIN or rounded.max() > _INT64_MAX):
        raise UnsupportedImageEncodingError(path, "pixel values outside the int64 range")
    return rounded.astype(np.int64)


@dataclass(frozen=True)
class FileRecord:
    """
    Everything staged from one file, before it becomes a table row.

    Attributes:
        path: Source file path
        values: Ordered {column name: value} for the requested header fields
        image: Decoded detector frame
        frame: Identifiers parsed from the file name
    """
    path: str
    values: Dict[str, float]
    image: DecodedImage
    frame: FrameName

    def to_frame(self) -> pl.DataFrame:
        """One-row frame: header columns, image columns, then file columns."""
        columns = [pl.Series(name, [value], dtype=pl.Float64) for name, value in self.values.items()]
        columns += [
            pl.Series(RAW_COLUMN, integer_pixels(self.image, self.path), dtype=pl.Int64).implode(),
            pl.Series(RAW_SHAPE_COLUMN, list(self.image.shape), dtype=pl.Int64).implode(),
            pl.Series("file_name", [self.frame.file_name], dtype=pl.Utf8),
            pl.Series("file_path", [self.path], dtype=pl.Utf8),
            pl.Series("sample_name", [self.frame.sample_name], dtype=pl.Utf8),
            pl.Series("tag", [self.frame.tag], dtype=pl.Utf8),
            pl.Series("scan_id", [self.frame.scan_id], dtype=pl.Int64),
            pl.Series("frame_number", [self.frame.frame_number], dtype=pl.Int64),
        ]
        return pl.DataFrame(columns)


def _header_number(header: Any, key: str, path: Path) -> float:
    try:
        value = header.get(key, _MISSING)
    except VerifyError as e:
        # astropy parses card values lazily; a garbled card fails here
        raise InvalidHeaderValueError(path, key, str(e)) from e
    if value is _MISSING:
        raise MissingHeaderFieldError(path, key)
    num = header_float(value)
    if num is None:
        raise InvalidHeaderValueError(path, key, value)
    return num


def header_values(header: Any, fields: Sequence[HeaderField], path: Union[str, Path]) -> Dict[str, float]:
    """
    Look up the requested fields in a primary header.

    "Q" is not a header card: it is computed from Sample Theta and Beamline
    Energy, which must then be present.

    Raises:
        MissingHeaderFieldError: A requested card is absent
        InvalidHeaderValueError: A requested card is not numeric
    """
    path = Path(path)
    values: Dict[str, float] = {}
    for field in fields:
        if field.key.upper() == Q.key.upper():
            theta = _header_number(header, SAMPLE_THETA.key, path)
            energy = _header_number(header, BEAMLINE_ENERGY.key, path)
            if energy == 0.0:
                raise InvalidHeaderValueError(path, BEAMLINE_ENERGY.key, energy)
            values[field.name] = q_value(theta, energy)
        else:
            values[field.name] = _header_number(header, field.key, path)
    return values


def check_path(path: Union[str, bytes, os.PathLike]) -> Path:
    """
    Validate a candidate path before opening it.

    Raises:
        InvalidUtf8PathError: Path bytes are not valid UTF-8
        NotAFitsFileError: Extension is not .fits
    """
    if not is_utf8_path(path):
        raise InvalidUtf8PathError(os.fsdecode(path))
    p = Path(os.fsdecode(path))
    if not has_fits_suffix(p):
        raise NotAFitsFileError(p)
    return p


def build(
    path: Union[str, bytes, os.PathLike],
    fields: Optional[Iterable[Union[str, HeaderField]]] = (),
) -> FileRecord:
    """
    Build the record of one file.

    Args:
        path: Path to a .fits file
        fields: Header fields to extract, in order. Empty means every numeric
            card of the primary header (keyword as column name).

    Returns:
        FileRecord for the file

    Raises:
        IngestionError: Any per-file failure (see ccdstage.core.errors)

    Example:
        >>> rec = build("ZnPc81041-00007.fits", ["Sample Theta", "Q"])
        >>> list(rec.values)
        ['Sample Theta [deg]', 'Q [A^-1]']
    """
    p = check_path(path)
    fields = resolve_fields(fields) if fields is not None else ()
    decoded = decode(p)
    if fields:
        values = header_values(decoded.header, fields, p)
    else:
        values = numeric_cards(decoded.header)
    return FileRecord(path=str(p), values=values, image=decoded.image, frame=parse_frame_name(p))


def build_frame(
    path: Union[str, bytes, os.PathLike],
    fields: Optional[Iterable[Union[str, HeaderField]]] = (),
) -> pl.DataFrame:
    """``build`` followed by conversion to a one-row frame."""
    record = build(path, fields)
    try:
        return record.to_frame()
    except pl.exceptions.PolarsError as e:
        raise TableConstructionError(record.path, str(e)) from e
