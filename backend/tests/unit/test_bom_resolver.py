"""
Unit tests for the BOM resolver

Product -> module and module -> part expansion, multi-line aggregation and
the hard failure on missing compositions.
"""
import pytest

from app.exceptions import BomResolutionError
from app.services.bom_resolver import BOMResolver, merge_requirements

from tests.fakes import FakeMasterdataClient


@pytest.fixture
def resolver():
    return BOMResolver(FakeMasterdataClient.learning_factory())


class TestProductExpansion:

    def test_multiplies_by_quantity(self, resolver):
        assert resolver.resolve_modules_for_product(1, 3) == {10: 3, 11: 6}

    def test_module_to_parts(self, resolver):
        assert resolver.resolve_parts_for_module(11, 2) == {101: 4, 102: 2}

    def test_aggregates_shared_modules_across_lines(self, resolver):
        # Both products use the housing (module 10)
        assert resolver.resolve_modules_for_items([(1, 1), (2, 2)]) == {10: 3, 11: 2, 12: 2}

    def test_product_lines_keep_provenance(self, resolver):
        requirements = resolver.resolve_product_lines([(1, 2), (2, 1)])
        assert [(r.product_id, r.product_quantity) for r in requirements] == [(1, 2), (2, 1)]
        assert requirements[1].modules == {10: 1, 12: 1}

    def test_fresh_result_each_call(self, resolver):
        first = resolver.resolve_modules_for_product(1, 1)
        first[10] = 99
        assert resolver.resolve_modules_for_product(1, 1) == {10: 1, 11: 2}


class TestMissingComposition:

    def test_unknown_product_raises(self, resolver):
        with pytest.raises(BomResolutionError) as exc:
            resolver.resolve_modules_for_product(999, 1)
        assert exc.value.details["item_type"] == "PRODUCT"
        assert exc.value.details["item_id"] == 999

    def test_empty_composition_raises(self):
        resolver = BOMResolver(FakeMasterdataClient(products={5: {}}))
        with pytest.raises(BomResolutionError):
            resolver.resolve_modules_for_product(5, 1)

    def test_unknown_module_raises(self, resolver):
        with pytest.raises(BomResolutionError) as exc:
            resolver.resolve_parts_for_module(999, 1)
        assert exc.value.details["item_type"] == "MODULE"

    def test_unreachable_masterdata_raises(self):
        masterdata = FakeMasterdataClient.learning_factory()
        masterdata.unreachable = True
        with pytest.raises(BomResolutionError):
            BOMResolver(masterdata).resolve_modules_for_product(1, 1)

    def test_one_bad_line_fails_whole_order(self, resolver):
        with pytest.raises(BomResolutionError):
            resolver.resolve_modules_for_items([(1, 1), (999, 1)])


def test_merge_requirements_sums_per_key():
    assert merge_requirements([{1: 2}, {1: 3, 2: 1}, {}]) == {1: 5, 2: 1}
