from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from astropy.io.fits.verify import VerifyError

logger = logging.getLogger(__name__)

# ----------------------------- Config -----------------------------
FITS_SUFFIX = ".fits"

# <sample>[_<tag>]<scan_id>-<frame_number>, e.g. "ZnPc_rt81041-00007"
FRAME_NAME_RE = re.compile(r"^(?P<sample>.*?)(?P<scan>\d+)-(?P<frame>\d+)$")
NUMBER_UNIT_RE = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)\s*([^\s]+)?\s*$")


def parse_number_unit(s: Any) -> Tuple[Optional[float], Optional[str]]:
    """
    Extract numeric value and unit from a header value.

    Args:
        s: Header value (number, string, or None)

    Returns:
        Tuple of (numeric_value, unit_string). Returns (None, None) if
        parsing fails. If input is a pure number, unit will be None.

    Example:
        >>> parse_number_unit("100ms")
        (100.0, 'ms')
        >>> parse_number_unit(42)
        (42.0, None)
        >>> parse_number_unit("1.5e-3 s")
        (0.0015, 's')
        >>> parse_number_unit("invalid")
        (None, None)
    """
    if s is None or isinstance(s, (bool, np.bool_)):
        return None, None
    if isinstance(s, (int, float, np.integer, np.floating)):
        return float(s), None
    m = NUMBER_UNIT_RE.match(str(s))
    if not m:
        return None, None
    return float(m.group(1)), m.group(2)


def header_float(value: Any) -> Optional[float]:
    """
    Cast a header card value to float.

    Numbers pass through, numeric strings (optionally with a trailing unit)
    are parsed, booleans, blanks and free text give None.

    Example:
        >>> header_float(283.7)
        283.7
        >>> header_float("0.5 deg")
        0.5
        >>> header_float(True) is None
        True
    """
    num, _ = parse_number_unit(value)
    return num


def numeric_cards(header: Any) -> Dict[str, float]:
    """
    Every numeric card of a FITS header as {keyword: float}.

    Commentary cards (COMMENT, HISTORY, blank), non-numeric values and cards
    astropy cannot parse are skipped. On duplicate keywords the first card
    wins.
    """
    out: Dict[str, float] = {}
    for card in header.cards:
        key = card.keyword
        if not key or key in {"COMMENT", "HISTORY"} or key in out:
            continue
        try:
            value = card.value
        except VerifyError:
            logger.debug(f"Skipping unparsable header card {key!r}")
            continue
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
            continue
        out[key] = float(value)
    return out


def has_fits_suffix(p: Union[str, Path]) -> bool:
    return Path(p).suffix == FITS_SUFFIX


def is_utf8_path(p: Union[str, bytes, Path]) -> bool:
    """False when the path holds bytes that are not valid UTF-8."""
    try:
        os.fsdecode(p).encode("utf-8")
    except UnicodeError:
        return False
    return True


# ----------------------------- Filename metadata -----------------------------

@dataclass(frozen=True)
class FrameName:
    """
    Identifiers encoded in a CCD frame's file name.

    Attributes:
        file_name: Final path component without extension
        sample_name: Sample label (the whole stem if the name does not parse)
        tag: Optional sub-label after the last underscore of the sample part
        scan_id: Scan number, None if the name does not parse
        frame_number: Frame index within the scan, None if the name does not parse
    """
    file_name: str
    sample_name: Optional[str]
    tag: Optional[str] = None
    scan_id: Optional[int] = None
    frame_number: Optional[int] = None

    @property
    def parsed(self) -> bool:
        return self.scan_id is not None


def parse_frame_name(p: Union[str, Path]) -> FrameName:
    """
    Parse sample, tag, scan and frame identifiers from a file name.

    Convention: ``<sample>[_<tag>]<scan_id>-<frame_number>.fits``. Separators
    between the sample part and the scan number (space, '-', '_') are dropped.

    Names that do not follow the convention are not an error: the sample is
    the stem and the numeric identifiers are None.

    Example:
        >>> parse_frame_name(Path("/data/ZnPc_rt81041-00007.fits"))
        FrameName(file_name='ZnPc_rt81041-00007', sample_name='ZnPc', tag='rt', scan_id=81041, frame_number=7)
        >>> parse_frame_name("81041-00007.fits").sample_name is None
        True
        >>> parse_frame_name("beam_check.fits").scan_id is None
        True
    """
    stem = Path(p).stem
    m = FRAME_NAME_RE.match(stem)
    if not m:
        logger.debug(f"File name does not follow <sample><scan>-<frame>: {stem}")
        return FrameName(file_name=stem, sample_name=stem)

    sample = m.group("sample").rstrip(" _-")
    tag = None
    if "_" in sample:
        head, _, tail = sample.rpartition("_")
        if head and tail:
            sample, tag = head, tail
    return FrameName(
        file_name=stem,
        sample_name=sample or None,
        tag=tag,
        scan_id=int(m.group("scan")),
        frame_number=int(m.group("frame")),
    )
