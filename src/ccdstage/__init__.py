"""
ccdstage - staging of CCD FITS frames into a single polars DataFrame.

One row per frame: selected header values, the flattened detector image and
its shape, identifiers parsed from the file name, and the momentum transfer Q.
"""

__version__ = "0.1.0"

from ccdstage.core import (
    ExperimentType,
    IngestionError,
    IngestionResult,
    read_experiment,
    read_experiment_pattern,
    read_fits,
    read_multiple_fits,
    simple_update,
    unpack_image,
)

__all__ = [
    "ExperimentType",
    "IngestionError",
    "IngestionResult",
    "read_experiment",
    "read_experiment_pattern",
    "read_fits",
    "read_multiple_fits",
    "simple_update",
    "unpack_image",
]
