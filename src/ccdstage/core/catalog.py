"""
Header key catalog.

Maps each experiment type to the ordered set of primary-header fields staged
for it, with display names and units. The order is the extraction order and
the column order of the staged table.

Example:
    >>> from ccdstage.core.catalog import ExperimentType, resolve
    >>> [f.name for f in resolve("xrs")]
    ['Beamline Energy [eV]']
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import InvalidExperimentTypeError


@dataclass(frozen=True)
class HeaderField:
    """
    One scalar metadata quantity of the primary header.

    Attributes:
        key: Keyword as stored in the FITS header (e.g. "Sample Theta")
        unit: Physical unit without brackets (e.g. "deg"), None for bare keys
    """
    key: str
    unit: Optional[str] = None

    @property
    def name(self) -> str:
        """Column name: key plus bracketed unit when the unit is known."""
        if self.unit:
            return f"{self.key} [{self.unit}]"
        return self.key


SAMPLE_THETA = HeaderField("Sample Theta", "deg")
CCD_THETA = HeaderField("CCD Theta", "deg")
BEAMLINE_ENERGY = HeaderField("Beamline Energy", "eV")
BEAM_CURRENT = HeaderField("Beam Current", "mA")
EPU_POLARIZATION = HeaderField("EPU Polarization", "deg")
HORIZONTAL_EXIT_SLIT_SIZE = HeaderField("Horizontal Exit Slit Size", "um")
HIGHER_ORDER_SUPPRESSOR = HeaderField("Higher Order Suppressor", "mm")
EXPOSURE = HeaderField("EXPOSURE", "s")

# Not a header keyword: computed from SAMPLE_THETA and BEAMLINE_ENERGY
Q = HeaderField("Q", "A^-1")


class ExperimentType(str, Enum):
    """Closed set of experiment types with a fixed header field list each."""
    XRR = "xrr"
    XRS = "xrs"
    OTHER = "other"

    @classmethod
    def from_str(cls, value: Union[str, "ExperimentType"]) -> "ExperimentType":
        """
        Parse an experiment type token (case-insensitive).

        Raises:
            InvalidExperimentTypeError: For anything outside xrr/xrs/other
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidExperimentTypeError(value) from None

    def keys(self) -> Tuple[HeaderField, ...]:
        return _CATALOG[self]

    def names(self) -> List[str]:
        return [f.name for f in self.keys()]


_CATALOG: Dict[ExperimentType, Tuple[HeaderField, ...]] = {
    ExperimentType.XRR: (
        SAMPLE_THETA,
        CCD_THETA,
        BEAMLINE_ENERGY,
        BEAM_CURRENT,
        EPU_POLARIZATION,
        HORIZONTAL_EXIT_SLIT_SIZE,
        HIGHER_ORDER_SUPPRESSOR,
        EXPOSURE,
    ),
    ExperimentType.XRS: (BEAMLINE_ENERGY,),
    ExperimentType.OTHER: (),
}

_KNOWN_FIELDS: Dict[str, HeaderField] = {
    f.key.upper(): f for fields in _CATALOG.values() for f in fields
}
_KNOWN_FIELDS[Q.key.upper()] = Q


def resolve(experiment_type: Union[str, ExperimentType]) -> Tuple[HeaderField, ...]:
    """Ordered header fields for an experiment type (empty for OTHER)."""
    return ExperimentType.from_str(experiment_type).keys()


def lookup_field(key: Union[str, HeaderField]) -> HeaderField:
    """
    Turn a header keyword into a HeaderField.

    Catalog keywords are matched case-insensitively and keep their units;
    anything else becomes a bare field named after the keyword.
    """
    if isinstance(key, HeaderField):
        return key
    key = str(key).strip()
    return _KNOWN_FIELDS.get(key.upper(), HeaderField(key))


def resolve_fields(
    fields: Union[None, str, ExperimentType, Iterable[Union[str, HeaderField]]],
) -> Tuple[HeaderField, ...]:
    """
    Normalize a caller's field selection.

    Args:
        fields: None (no fields), an experiment type or token, or an explicit
            ordered sequence of keywords / HeaderField objects

    Returns:
        Ordered tuple of unique HeaderField objects

    Example:
        >>> resolve_fields(["beamline energy", "Ring Current"])
        (HeaderField(key='Beamline Energy', unit='eV'), HeaderField(key='Ring Current', unit=None))
    """
    if fields is None:
        return ()
    if isinstance(fields, (str, ExperimentType)):
        return resolve(fields)
    out: List[HeaderField] = []
    seen = set()
    for item in fields:
        field = lookup_field(item)
        if not field.key or field.key.upper() in seen:
            continue
        seen.add(field.key.upper())
        out.append(field)
    return tuple(out)
