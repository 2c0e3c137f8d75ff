"""Tests for the header key catalog."""

import pytest

from ccdstage.core.catalog import (
    BEAMLINE_ENERGY,
    Q,
    SAMPLE_THETA,
    ExperimentType,
    HeaderField,
    lookup_field,
    resolve,
    resolve_fields,
)
from ccdstage.core.errors import InvalidExperimentTypeError


class TestExperimentType:

    @pytest.mark.parametrize("token", ["xrr", "XRR", " Xrr "])
    def test_from_str_is_case_insensitive(self, token):
        assert ExperimentType.from_str(token) is ExperimentType.XRR

    def test_from_str_passes_enum_through(self):
        assert ExperimentType.from_str(ExperimentType.XRS) is ExperimentType.XRS

    def test_invalid_token_is_fatal(self):
        with pytest.raises(InvalidExperimentTypeError) as exc:
            ExperimentType.from_str("saxs")
        assert exc.value.fatal
        assert "saxs" in str(exc.value)

    def test_xrr_key_order(self):
        assert ExperimentType.XRR.names() == [
            "Sample Theta [deg]",
            "CCD Theta [deg]",
            "Beamline Energy [eV]",
            "Beam Current [mA]",
            "EPU Polarization [deg]",
            "Horizontal Exit Slit Size [um]",
            "Higher Order Suppressor [mm]",
            "EXPOSURE [s]",
        ]

    def test_xrs_and_other(self):
        assert resolve("xrs") == (BEAMLINE_ENERGY,)
        assert resolve(ExperimentType.OTHER) == ()


def test_header_field_name():
    assert SAMPLE_THETA.name == "Sample Theta [deg]"
    assert HeaderField("Ring Current").name == "Ring Current"
    assert Q.name == "Q [A^-1]"


def test_lookup_field_matches_catalog_case_insensitively():
    assert lookup_field("beamline energy") == BEAMLINE_ENERGY
    assert lookup_field("q") == Q
    assert lookup_field("Ring Current") == HeaderField("Ring Current")


class TestResolveFields:

    def test_none_is_empty(self):
        assert resolve_fields(None) == ()

    def test_experiment_token(self):
        assert resolve_fields("xrs") == (BEAMLINE_ENERGY,)

    def test_explicit_list_keeps_order_and_drops_duplicates(self):
        fields = resolve_fields(["Beamline Energy", "Ring Current", "BEAMLINE ENERGY", "", SAMPLE_THETA])
        assert fields == (BEAMLINE_ENERGY, HeaderField("Ring Current"), SAMPLE_THETA)

    def test_invalid_token_raises(self):
        with pytest.raises(InvalidExperimentTypeError):
            resolve_fields("bogus")
