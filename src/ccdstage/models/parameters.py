"""
Pydantic models for loader parameters.

``LoaderParameters`` validates everything a batch load needs before any file
is opened, so configuration mistakes fail fast with a readable message
instead of surfacing halfway through a worker pool.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ccdstage.core.catalog import ExperimentType
from ccdstage.core.errors import InvalidExperimentTypeError
from ccdstage.core.loader import DEFAULT_POLARS_THREADS, DEFAULT_WORKERS


class LoaderParameters(BaseModel):
    """
    Validated parameters for ``run_loader``.

    Example
    -------
    >>> params = LoaderParameters(
    ...     data_dir=Path("data/ZnPc"),
    ...     pattern="ZnPc81041-*",
    ...     experiment_type="XRR",
    ...     workers=8,
    ... )
    >>> params.experiment_type
    <ExperimentType.XRR: 'xrr'>
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    data_dir: Path = Field(
        ...,
        description="Directory containing the CCD .fits frames"
    )
    pattern: Optional[str] = Field(
        default=None,
        description="Shell glob matched against file names (not paths)"
    )
    experiment_type: ExperimentType = Field(
        default=ExperimentType.XRR,
        description="Selects the header fields to stage (xrr, xrs, other)"
    )
    fields: Optional[List[str]] = Field(
        default=None,
        description="Explicit header keywords; overrides experiment_type"
    )
    workers: int = Field(
        default=DEFAULT_WORKERS,
        ge=1,
        le=64,
        description="Number of parallel workers"
    )
    polars_threads: int = Field(
        default=DEFAULT_POLARS_THREADS,
        ge=1,
        description="POLARS_MAX_THREADS for the worker pool"
    )
    use_threads: bool = Field(
        default=False,
        description="Use a thread pool instead of spawned processes"
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_path(cls, v) -> Path:
        """Resolve to an absolute path; existence is checked by the loader."""
        path = Path(v).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path.resolve()

    @field_validator("pattern")
    @classmethod
    def non_empty_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("pattern must not be empty")
        return v

    @field_validator("experiment_type", mode="before")
    @classmethod
    def parse_experiment_type(cls, v):
        try:
            return ExperimentType.from_str(v)
        except InvalidExperimentTypeError as e:
            raise ValueError(str(e)) from None

    @field_validator("fields")
    @classmethod
    def clean_fields(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        cleaned = [f.strip() for f in v if f and f.strip()]
        return cleaned or None
