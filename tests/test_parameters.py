"""Tests for validated loader parameters."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ccdstage.core.catalog import ExperimentType
from ccdstage.models.parameters import LoaderParameters


def test_defaults(tmp_path):
    params = LoaderParameters(data_dir=tmp_path)
    assert params.data_dir == tmp_path.resolve()
    assert params.experiment_type is ExperimentType.XRR
    assert params.pattern is None
    assert params.fields is None
    assert params.workers == 6
    assert params.polars_threads == 1
    assert params.use_threads is False


def test_relative_directory_is_resolved():
    params = LoaderParameters(data_dir="data/ZnPc")
    assert params.data_dir.is_absolute()
    assert params.data_dir == (Path.cwd() / "data/ZnPc").resolve()


@pytest.mark.parametrize("token, expected", [("XRS", ExperimentType.XRS), ("other", ExperimentType.OTHER)])
def test_experiment_type_parsing(tmp_path, token, expected):
    assert LoaderParameters(data_dir=tmp_path, experiment_type=token).experiment_type is expected


def test_invalid_experiment_type(tmp_path):
    with pytest.raises(ValidationError) as exc:
        LoaderParameters(data_dir=tmp_path, experiment_type="saxs")
    assert "saxs" in str(exc.value)


def test_empty_pattern_rejected(tmp_path):
    with pytest.raises(ValidationError):
        LoaderParameters(data_dir=tmp_path, pattern="  ")


@pytest.mark.parametrize("workers", [0, 65])
def test_worker_range(tmp_path, workers):
    with pytest.raises(ValidationError):
        LoaderParameters(data_dir=tmp_path, workers=workers)


def test_fields_are_cleaned(tmp_path):
    params = LoaderParameters(data_dir=tmp_path, fields=[" Sample Theta ", "", "EXPOSURE"])
    assert params.fields == ["Sample Theta", "EXPOSURE"]
    assert LoaderParameters(data_dir=tmp_path, fields=["", " "]).fields is None


def test_unknown_parameter_rejected(tmp_path):
    with pytest.raises(ValidationError):
        LoaderParameters(data_dir=tmp_path, recursive=True)


def test_json_round_trip(tmp_path):
    params = LoaderParameters(data_dir=tmp_path, pattern="ZnPc*", experiment_type="xrs", workers=2)
    restored = LoaderParameters.model_validate_json(params.model_dump_json())
    assert restored == params


def test_assignment_is_validated(tmp_path):
    params = LoaderParameters(data_dir=tmp_path)
    with pytest.raises(ValidationError):
        params.workers = 0
