"""
Error kinds raised while staging CCD FITS files.

Every error carries a ``kind`` tag, the offending ``path`` (file, glob
pattern, directory or token) and an optional ``detail``. Errors fall in two
propagation classes:

Per-file (the file is skipped, the error is collected)
    NotAFitsFile, ContainerDecodeFailure, MissingHeaderField,
    InvalidHeaderValue, MissingImageHDU, UnsupportedImageEncoding,
    InvalidUtf8Path, TableConstructionFailure

Batch-fatal (the whole operation aborts)
    DirectoryNotFound, NoFilesMatched, AllFilesFailed, FileNotFound,
    InvalidExperimentType, OutOfSync

Errors are raised inside worker processes and sent back to the parent, so
``self.args`` always matches the constructor signature (the default
``Exception`` pickling protocol relies on it).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class IngestionError(Exception):
    """Base class for all staging errors."""

    kind = "IngestionError"
    fatal = False

    def __init__(self, path: Any, detail: Optional[str] = None):
        self.path = str(path)
        self.detail = detail
        super().__init__(self.path, detail)

    def message(self) -> str:
        if self.detail:
            return f"{self.path}: {self.detail}"
        return self.path

    def __str__(self) -> str:
        return self.message()

    def to_record(self) -> Dict[str, str]:
        """Flat representation used for failure tables and reject logs."""
        return {"kind": self.kind, "path": self.path, "error": self.message()}


# ----------------------------- Per-file --------------------------------

class NotAFitsFileError(IngestionError):
    kind = "NotAFitsFile"

    def message(self) -> str:
        return f"{self.path}: not a FITS file (expected a .fits extension)"


class ContainerDecodeError(IngestionError):
    """The FITS container could not be opened or read."""

    kind = "ContainerDecodeFailure"

    def __init__(self, path: Any, cause: Any = None):
        super().__init__(path, None if cause is None else str(cause))
        self.cause = self.detail

    def message(self) -> str:
        return f"{self.path}: failed to decode FITS container: {self.cause}"


class MissingHeaderFieldError(IngestionError):
    kind = "MissingHeaderField"

    def __init__(self, path: Any, field: str):
        super().__init__(path, field)
        self.field = field

    def message(self) -> str:
        return f"{self.path}: header field '{self.field}' not found"


class InvalidHeaderValueError(IngestionError):
    kind = "InvalidHeaderValue"

    def __init__(self, path: Any, field: str, value: Any = None):
        super().__init__(path, field)
        self.field = field
        self.value = value

    def __reduce__(self):
        return (self.__class__, (self.path, self.field, self.value))

    def message(self) -> str:
        return f"{self.path}: header field '{self.field}' is not a usable number ({self.value!r})"


class MissingImageHDUError(IngestionError):
    kind = "MissingImageHDU"

    def message(self) -> str:
        return f"{self.path}: no image payload at HDU 2 or HDU 1"


class UnsupportedImageEncodingError(IngestionError):
    kind = "UnsupportedImageEncoding"

    def message(self) -> str:
        return f"{self.path}: unsupported image encoding ({self.detail})"


class InvalidUtf8PathError(IngestionError):
    kind = "InvalidUtf8Path"

    def __init__(self, path: Any, detail: Optional[str] = None):
        # undecodable bytes arrive as lone surrogates; store them escaped
        super().__init__(str(path).encode("utf-8", "backslashreplace").decode("utf-8"), detail)

    def message(self) -> str:
        return f"{self.path}: path is not valid UTF-8"


class TableConstructionError(IngestionError):
    kind = "TableConstructionFailure"

    def message(self) -> str:
        return f"{self.path}: failed to build table ({self.detail})"


# ----------------------------- Batch-fatal -----------------------------

class DirectoryNotFoundError(IngestionError):
    kind = "DirectoryNotFound"
    fatal = True

    def message(self) -> str:
        return f"directory not found: {self.path}"


class NoFilesMatchedError(IngestionError):
    kind = "NoFilesMatched"
    fatal = True

    def message(self) -> str:
        if self.detail:
            return f"no .fits files matching '{self.detail}' in {self.path}"
        return f"no .fits files found in {self.path}"


class MissingFileError(IngestionError):
    """An entry of an explicit file list does not exist."""

    kind = "FileNotFound"
    fatal = True

    def message(self) -> str:
        return f"file not found: {self.path}"


class InvalidExperimentTypeError(IngestionError):
    kind = "InvalidExperimentType"
    fatal = True

    def message(self) -> str:
        return f"invalid experiment type '{self.path}' (expected one of: xrr, xrs, other)"


class OutOfSyncError(IngestionError):
    kind = "OutOfSync"
    fatal = True

    def message(self) -> str:
        return f"{self.path}: loaded data is out of sync with the directory ({self.detail}), reload from scratch"


class AllFilesFailedError(IngestionError):
    """Every candidate file of a batch failed to ingest."""

    kind = "AllFilesFailed"
    fatal = True

    def __init__(self, path: Any, failures: Sequence[IngestionError] = ()):
        self.failures: List[IngestionError] = list(failures)
        super().__init__(path, f"{len(self.failures)} file(s) failed")

    def __reduce__(self):
        return (self.__class__, (self.path, self.failures))

    def message(self) -> str:
        head = f"all {len(self.failures)} candidate file(s) in {self.path} failed to ingest"
        if not self.failures:
            return head
        return head + "; first error: " + self.failures[0].message()
