"""Tests for tuner_core.parameters -- the static parameter catalog."""

import dataclasses

import pytest

from tuner_core.parameters import (
    N_PARAMS,
    PARAMETERS,
    ParameterDescriptor,
    ParamId,
    get_descriptor,
    get_descriptor_by_title,
    validate_catalog,
)


class TestCatalog:

    def test_has_thirteen_parameters(self):
        assert N_PARAMS == 13
        assert len(PARAMETERS) == len(ParamId)

    def test_ids_match_positions(self):
        for position, descriptor in enumerate(PARAMETERS):
            assert descriptor.id == position

    @pytest.mark.parametrize("descriptor", PARAMETERS, ids=lambda d: d.title)
    def test_start_within_bounds(self, descriptor):
        assert descriptor.min <= descriptor.start <= descriptor.max

    def test_titles_are_unique(self):
        titles = [d.title for d in PARAMETERS]
        assert len(set(titles)) == len(titles)

    def test_kappa_bounds(self):
        kappa = get_descriptor(ParamId.KAPPA)
        assert (kappa.title, kappa.min, kappa.max, kappa.start) == ("kappa", 1.0, 150.0, 9.0)

    def test_kernel_is_continuous_index_over_three_choices(self):
        kernel = get_descriptor(ParamId.KERNEL)
        assert kernel.min == -0.49
        assert kernel.max == 2.49
        assert kernel.start == 0.0

    def test_catalog_is_immutable(self):
        with pytest.raises(TypeError):
            PARAMETERS[0] = PARAMETERS[1]
        with pytest.raises(dataclasses.FrozenInstanceError):
            PARAMETERS[0].max = 100.0


class TestLookup:

    def test_get_descriptor_by_enum_and_int(self):
        assert get_descriptor(ParamId.ENERGY_THRESHOLD) is get_descriptor(10)
        assert get_descriptor(10).title == "eMin"

    def test_get_descriptor_unknown_id(self):
        with pytest.raises(ValueError):
            get_descriptor(13)

    def test_get_descriptor_by_title(self):
        assert get_descriptor_by_title("matchingDist").id == ParamId.MATCHING_DISTANCE

    def test_get_descriptor_by_unknown_title(self):
        with pytest.raises(KeyError):
            get_descriptor_by_title("notAParameter")


class TestValidation:

    def test_start_below_min_rejected(self):
        with pytest.raises(ValueError, match="min <= start <= max"):
            ParameterDescriptor(ParamId.KAPPA, "kappa", 1.0, 150.0, 0.5)

    def test_start_above_max_rejected(self):
        with pytest.raises(ValueError):
            ParameterDescriptor(ParamId.KAPPA, "kappa", 1.0, 150.0, 151.0)

    def test_span_and_contains(self):
        d = ParameterDescriptor(ParamId.KAPPA, "kappa", 1.0, 150.0, 9.0)
        assert d.span == 149.0
        assert d.contains(1.0) and d.contains(150.0)
        assert not d.contains(150.5)

    def test_misaligned_catalog_rejected(self):
        swapped = (PARAMETERS[1], PARAMETERS[0]) + PARAMETERS[2:]
        with pytest.raises(ValueError, match="position"):
            validate_catalog(swapped)

    def test_incomplete_catalog_rejected(self):
        with pytest.raises(ValueError):
            validate_catalog(PARAMETERS[:-1])
