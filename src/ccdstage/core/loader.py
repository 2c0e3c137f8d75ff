from __future__ import annotations

import fnmatch
import logging
import multiprocessing
import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import polars as pl

from .catalog import ExperimentType, HeaderField, resolve_fields
from .derived import with_q
from .errors import (
    AllFilesFailedError,
    ContainerDecodeError,
    DirectoryNotFoundError,
    IngestionError,
    MissingFileError,
    NoFilesMatchedError,
    OutOfSyncError,
)
from .merge import merge, merge_all
from .record_builder import RAW_COLUMN, RAW_SHAPE_COLUMN, build_frame
from .stage_utils import FITS_SUFFIX

logger = logging.getLogger(__name__)

# ----------------------------- Config -----------------------------
DEFAULT_WORKERS = 6
DEFAULT_POLARS_THREADS = 1

ProgressCallback = Callable[[int, int, str, str], None]
FieldSpec = Union[None, str, ExperimentType, Iterable[Union[str, HeaderField]]]


@dataclass
class IngestionResult:
    """
    Outcome of a batch load.

    Attributes:
        table: One row per successfully staged file
        failures: Per-file errors of the files that were skipped
    """
    table: pl.DataFrame
    failures: List[IngestionError] = field(default_factory=list)

    @property
    def n_ok(self) -> int:
        return self.table.height

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    def failures_frame(self) -> pl.DataFrame:
        """Failures as a (kind, path, error) table."""
        return pl.DataFrame(
            [e.to_record() for e in self.failures],
            schema={"kind": pl.Utf8, "path": pl.Utf8, "error": pl.Utf8},
        )

    def summary(self) -> str:
        return f"ok={self.n_ok}  failed={self.n_failed}  columns={self.table.width}"


# ------------------------------- Worker ----------------------------------

def ingest_file_task(src_str: str, fields: Tuple[HeaderField, ...]) -> Dict[str, Any]:
    """
    Stage a single FITS file into a one-row frame.

    This is the function executed in worker processes. It never raises for
    per-file problems: the outcome is returned as an event dictionary.
    Unexpected exceptions are reported as ContainerDecodeError.

    Args:
        src_str: Path to the source file (string for pickling)
        fields: Resolved header fields (empty tuple = all numeric cards)

    Returns:
        {"status": "ok", "source_file": ..., "frame": pl.DataFrame} or
        {"status": "reject", "source_file": ..., "error": IngestionError}
    """
    try:
        frame = build_frame(src_str, fields)
    except IngestionError as e:
        return {"status": "reject", "source_file": src_str, "error": e}
    except Exception as e:
        return {"status": "reject", "source_file": src_str, "error": ContainerDecodeError(src_str, repr(e))}
    return {"status": "ok", "source_file": src_str, "frame": frame}


# ------------------------------- Discovery ----------------------------------

def discover_fits(directory: Union[str, Path], pattern: Optional[str] = None) -> List[Path]:
    """
    List candidate FITS files directly inside a directory.

    Args:
        directory: Directory to scan (not recursive)
        pattern: Optional shell glob (``*``, ``?``, ``[...]``) matched against
            the file name only, never the full path

    Returns:
        Sorted list of .fits files

    Raises:
        DirectoryNotFoundError: ``directory`` is missing or not a directory
        NoFilesMatchedError: No .fits file (matching ``pattern``) was found

    Example:
        >>> discover_fits(Path("data/ZnPc"), "ZnPc81041-*")
        [PosixPath('data/ZnPc/ZnPc81041-00001.fits'), ...]
    """
    root = Path(directory)
    if not root.is_dir():
        raise DirectoryNotFoundError(root)

    files: List[Path] = []
    for p in root.iterdir():
        if not p.is_file() or p.suffix != FITS_SUFFIX:
            continue
        if p.name.startswith("._"):
            continue
        if pattern is not None and not fnmatch.fnmatchcase(p.name, pattern):
            continue
        files.append(p)
    if not files:
        raise NoFilesMatchedError(root, pattern)
    files.sort()
    return files


# ------------------------------- Orchestration ----------------------------------

def _make_executor(workers: int, use_threads: bool) -> Executor:
    if use_threads:
        return ThreadPoolExecutor(max_workers=workers)
    # spawn: polars keeps a thread pool that is not fork-safe
    return ProcessPoolExecutor(max_workers=workers, mp_context=multiprocessing.get_context("spawn"))


def _run_tasks(
    paths: Sequence[str],
    fields: Tuple[HeaderField, ...],
    workers: int,
    use_threads: bool,
    progress_callback: Optional[ProgressCallback],
) -> List[Dict[str, Any]]:
    """Run ingest_file_task over paths; events come back in submission order."""
    total = len(paths)
    events: List[Optional[Dict[str, Any]]] = [None] * total

    def _report(completed: int, event: Dict[str, Any]) -> None:
        st = event["status"]
        if st == "ok":
            logger.debug(f"[{completed:04d}/{total}]      OK {event['source_file']}")
        else:
            logger.warning(f"[{completed:04d}/{total}]  REJECT {event['error']}")
        if progress_callback:
            progress_callback(completed, total, event["source_file"], st)

    if workers <= 1 or total == 1:
        for i, src in enumerate(paths):
            events[i] = ingest_file_task(src, fields)
            _report(i + 1, events[i])
        return events

    with _make_executor(min(workers, total), use_threads) as ex:
        future_to_idx = {ex.submit(ingest_file_task, src, fields): i for i, src in enumerate(paths)}
        completed = 0
        for fut in as_completed(future_to_idx):
            completed += 1
            idx = future_to_idx[fut]
            try:
                events[idx] = fut.result()
            except Exception as e:
                # worker died (e.g. BrokenProcessPool); record it against the file
                events[idx] = {"status": "reject", "source_file": paths[idx],
                               "error": ContainerDecodeError(paths[idx], repr(e))}
            _report(completed, events[idx])
    return events


def ingest(
    paths: Sequence[Union[str, Path]],
    fields: FieldSpec = ExperimentType.XRR,
    workers: int = DEFAULT_WORKERS,
    use_threads: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
    source: Optional[Union[str, Path]] = None,
) -> IngestionResult:
    """
    Stage many FITS files into one table.

    Files are decoded independently in a worker pool. A file that fails is
    recorded in ``failures`` and left out of the table; the batch goes on.
    The per-file frames are then merged (schema-reconciled, in input order)
    and the derived Q column is added once over the merged table.

    Args:
        paths: Candidate files
        fields: Experiment type / token, or explicit ordered header keywords.
            An empty selection stages every numeric header card.
        workers: Pool size; 1 processes files sequentially in-process
        use_threads: Use threads instead of spawned processes (safe inside
            interactive or GUI hosts)
        progress_callback: Optional callback(completed, total, path, status)
        source: Directory or pattern named in batch-level errors

    Returns:
        IngestionResult(table, failures)

    Raises:
        NoFilesMatchedError: ``paths`` is empty
        AllFilesFailedError: Every file failed
        TableConstructionError: The per-file frames could not be merged
    """
    label = str(source) if source is not None else "<file list>"
    srcs = [os.fsdecode(p) for p in paths]
    if not srcs:
        raise NoFilesMatchedError(label)

    resolved = resolve_fields(fields)
    logger.info(f"Staging {len(srcs)} FITS file(s) from {label} with {workers} worker(s)")

    events = _run_tasks(srcs, resolved, workers, use_threads, progress_callback)

    frames = [ev["frame"] for ev in events if ev["status"] == "ok"]
    failures = [ev["error"] for ev in events if ev["status"] == "reject"]

    if not frames:
        logger.error(f"All {len(failures)} file(s) from {label} failed")
        raise AllFilesFailedError(label, failures)

    table = with_q(merge_all(frames))
    logger.info(f"Staging complete  |  ok={len(frames)}  rejects={len(failures)}  columns={table.width}")
    return IngestionResult(table=table, failures=failures)


# ------------------------------- Front ends ----------------------------------

def read_fits(path: Union[str, Path], fields: FieldSpec = ()) -> pl.DataFrame:
    """
    Stage a single file; errors propagate.

    With no fields every numeric card of the primary header becomes a column.
    """
    return with_q(build_frame(path, resolve_fields(fields)))


def read_multiple_fits(
    paths: Sequence[Union[str, Path]],
    fields: FieldSpec = ExperimentType.XRR,
    workers: int = DEFAULT_WORKERS,
    use_threads: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
) -> IngestionResult:
    """
    Stage an explicit list of files.

    Raises:
        MissingFileError: An entry of ``paths`` does not exist
    """
    for p in paths:
        if not Path(os.fsdecode(p)).exists():
            raise MissingFileError(os.fsdecode(p))
    return ingest(paths, fields, workers=workers, use_threads=use_threads,
                  progress_callback=progress_callback)


def read_experiment(
    directory: Union[str, Path],
    experiment_type: Union[str, ExperimentType] = ExperimentType.XRR,
    fields: Optional[Sequence[Union[str, HeaderField]]] = None,
    workers: int = DEFAULT_WORKERS,
    use_threads: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
) -> IngestionResult:
    """
    Stage every .fits file directly inside ``directory``.

    Args:
        directory: Experiment directory
        experiment_type: xrr / xrs / other; selects the header fields
        fields: Explicit header keywords, overriding ``experiment_type``

    Example:
        >>> res = read_experiment("data/ZnPc", "xrr")
        >>> res.table.select("Sample Theta [deg]", "Q [A^-1]").head(2)
        >>> res.n_failed
        0
    """
    exp = ExperimentType.from_str(experiment_type)
    files = discover_fits(directory)
    logger.info(f"Discovered {len(files)} FITS file(s) under {directory}")
    return ingest(files, fields if fields is not None else exp, workers=workers,
                  use_threads=use_threads, progress_callback=progress_callback, source=directory)


def read_experiment_pattern(
    directory: Union[str, Path],
    pattern: str,
    experiment_type: Union[str, ExperimentType] = ExperimentType.XRR,
    fields: Optional[Sequence[Union[str, HeaderField]]] = None,
    workers: int = DEFAULT_WORKERS,
    use_threads: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
) -> IngestionResult:
    """Like ``read_experiment`` but only for file names matching ``pattern``."""
    exp = ExperimentType.from_str(experiment_type)
    files = discover_fits(directory, pattern)
    logger.info(f"Discovered {len(files)} FITS file(s) matching '{pattern}' under {directory}")
    return ingest(files, fields if fields is not None else exp, workers=workers,
                  use_threads=use_threads, progress_callback=progress_callback,
                  source=Path(directory) / pattern)


def run_loader(params, progress_callback: Optional[ProgressCallback] = None) -> IngestionResult:
    """
    Run the loader with pydantic-validated parameters.

    Args:
        params: Validated LoaderParameters instance
        progress_callback: Optional callback(completed, total, path, status)

    Example:
        >>> from ccdstage.models.parameters import LoaderParameters
        >>> params = LoaderParameters(data_dir=Path("data/ZnPc"), experiment_type="xrr", workers=8)
        >>> result = run_loader(params)
    """
    os.environ["POLARS_MAX_THREADS"] = str(params.polars_threads)
    fields = list(params.fields) if params.fields else None
    if params.pattern:
        return read_experiment_pattern(
            params.data_dir, params.pattern, params.experiment_type, fields=fields,
            workers=params.workers, use_threads=params.use_threads,
            progress_callback=progress_callback,
        )
    return read_experiment(
        params.data_dir, params.experiment_type, fields=fields,
        workers=params.workers, use_threads=params.use_threads,
        progress_callback=progress_callback,
    )


def simple_update(
    df: pl.DataFrame,
    directory: Union[str, Path],
    experiment_type: Union[str, ExperimentType] = ExperimentType.XRR,
    workers: int = DEFAULT_WORKERS,
    use_threads: bool = False,
) -> pl.DataFrame:
    """
    Append rows for .fits files that appeared in ``directory`` since ``df``
    was loaded.

    Files already present in ``df["file_path"]`` are not re-read; paths are
    compared after resolving, so relative and absolute spellings match. New
    files that fail to stage are logged and skipped.

    Raises:
        OutOfSyncError: ``df`` holds more files than the directory, or has no
            file_path column
    """
    exp = ExperimentType.from_str(experiment_type)
    root = Path(directory)
    if not root.is_dir():
        raise DirectoryNotFoundError(root)
    if "file_path" not in df.columns:
        raise OutOfSyncError(root, "table has no file_path column")

    try:
        on_disk = discover_fits(root)
    except NoFilesMatchedError:
        on_disk = []
    loaded = {Path(x).resolve() for x in df["file_path"].drop_nulls().to_list()}
    if len(loaded) > len(on_disk):
        raise OutOfSyncError(root, f"{len(loaded)} loaded, {len(on_disk)} on disk")

    new = [p for p in on_disk if p.resolve() not in loaded]
    if not new:
        logger.info(f"No new FITS files under {root}")
        return df

    logger.info(f"Appending {len(new)} new FITS file(s) from {root}")
    try:
        result = ingest(new, exp, workers=workers, use_threads=use_threads, source=root)
    except AllFilesFailedError as e:
        for err in e.failures:
            logger.warning(f"Skipped new file: {err}")
        return df
    for err in result.failures:
        logger.warning(f"Skipped new file: {err}")
    return with_q(merge(df, result.table))


def unpack_image(flat: Union[Sequence[int], pl.Series, np.ndarray], shape: Sequence[int]) -> np.ndarray:
    """
    Rebuild the 2-D image of one row from its Raw / Raw Shape values.

    Example:
        >>> row = table.row(0, named=True)
        >>> unpack_image(row["Raw"], row["Raw Shape"]).shape
        (2048, 2048)
    """
    if isinstance(flat, pl.Series):
        flat = flat.to_numpy()
    rows, cols = (int(n) for n in shape)
    return np.asarray(flat, dtype=np.int64).reshape(rows, cols)


def image_at(table: pl.DataFrame, index: int) -> np.ndarray:
    """2-D image of row ``index`` of a staged table."""
    row = table.row(index, named=True)
    return unpack_image(row[RAW_COLUMN], row[RAW_SHAPE_COLUMN])
