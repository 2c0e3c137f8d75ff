"""
Staging Layer - FITS to DataFrame Pipeline
==========================================

This module turns a directory (or list, or glob-matched subset) of CCD FITS
frames into one polars DataFrame with one row per file.

Key Functions
-------------
- read_experiment: Stage every .fits file of a directory
- read_experiment_pattern: Same, restricted to names matching a glob
- read_multiple_fits: Stage an explicit list of files
- read_fits: Stage a single file
- ingest: Parallel engine behind all of the above
- merge / merge_all: Schema-reconciling concatenation
- with_q: Derived momentum-transfer column

Usage
-----
    >>> from ccdstage.core import read_experiment
    >>> result = read_experiment("data/ZnPc", "xrr", workers=8)
    >>> result.table.columns[:3]
    ['Sample Theta [deg]', 'CCD Theta [deg]', 'Beamline Energy [eV]']
    >>> result.failures
    []

Architecture
------------
FITS files -> Record Builder (worker pool) -> Merge (tree reduce) -> Q -> DataFrame
                    |                                |
              header catalog                 null-padding of
              image HDU 2 / 1                missing columns

Features
--------
- Parallel processing with ProcessPoolExecutor (spawn) or threads
- Per-file failure isolation; failures returned with the table
- Column sets reconciled across files (missing cards become nulls)
- Deterministic column order (first-seen over the sorted file list)
"""

from .catalog import ExperimentType, HeaderField, resolve, resolve_fields
from .derived import q_value, with_q
from .errors import (
    AllFilesFailedError,
    ContainerDecodeError,
    DirectoryNotFoundError,
    IngestionError,
    InvalidExperimentTypeError,
    InvalidHeaderValueError,
    InvalidUtf8PathError,
    MissingFileError,
    MissingHeaderFieldError,
    MissingImageHDUError,
    NoFilesMatchedError,
    NotAFitsFileError,
    OutOfSyncError,
    TableConstructionError,
    UnsupportedImageEncodingError,
)
from .fits_io import DecodedImage, decode
from .loader import (
    IngestionResult,
    discover_fits,
    image_at,
    ingest,
    ingest_file_task,
    read_experiment,
    read_experiment_pattern,
    read_fits,
    read_multiple_fits,
    run_loader,
    simple_update,
    unpack_image,
)
from .merge import merge, merge_all, tree_reduce
from .record_builder import FileRecord, build, build_frame

__all__ = [
    "ExperimentType",
    "HeaderField",
    "resolve",
    "resolve_fields",
    "q_value",
    "with_q",
    "IngestionError",
    "NotAFitsFileError",
    "ContainerDecodeError",
    "MissingHeaderFieldError",
    "InvalidHeaderValueError",
    "MissingImageHDUError",
    "UnsupportedImageEncodingError",
    "InvalidUtf8PathError",
    "TableConstructionError",
    "DirectoryNotFoundError",
    "NoFilesMatchedError",
    "MissingFileError",
    "InvalidExperimentTypeError",
    "OutOfSyncError",
    "AllFilesFailedError",
    "DecodedImage",
    "decode",
    "IngestionResult",
    "discover_fits",
    "ingest",
    "ingest_file_task",
    "read_fits",
    "read_multiple_fits",
    "read_experiment",
    "read_experiment_pattern",
    "run_loader",
    "simple_update",
    "unpack_image",
    "image_at",
    "merge",
    "merge_all",
    "tree_reduce",
    "FileRecord",
    "build",
    "build_frame",
]
