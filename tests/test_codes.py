"""Tests for the dimension code tables."""

import pytest

from gems_risk_mcp import codes
from gems_risk_mcp.codes import DataSource


class TestLookups:
    @pytest.mark.parametrize("slug", list(codes.REGION_CODES))
    def test_every_region_slug_resolves(self, slug):
        dimension = codes.lookup_region(slug)
        assert dimension is not None
        assert dimension.code == codes.REGION_CODES[slug]
        assert dimension.name == codes.REGION_DISPLAY_NAMES[dimension.code]

    @pytest.mark.parametrize("slug", list(codes.SECTOR_CODES))
    def test_every_sector_slug_resolves(self, slug):
        dimension = codes.lookup_sector(slug)
        assert dimension is not None
        assert dimension.name

    @pytest.mark.parametrize("slug", list(codes.PROJECT_TYPE_CODES))
    def test_every_project_type_slug_resolves(self, slug):
        assert codes.lookup_project_type(slug) is not None

    @pytest.mark.parametrize("slug", list(codes.SENIORITY_CODES))
    def test_every_seniority_slug_resolves(self, slug):
        assert codes.lookup_seniority(slug) is not None

    @pytest.mark.parametrize(
        "lookup",
        [codes.lookup_region, codes.lookup_sector, codes.lookup_project_type, codes.lookup_seniority],
    )
    @pytest.mark.parametrize("slug", ["atlantis", "", None, "EAS"])
    def test_unknown_slug_returns_none(self, lookup, slug):
        assert lookup(slug) is None

    def test_lookup_is_case_and_whitespace_insensitive(self):
        assert codes.lookup_region("  East-Asia ").code == "EAS"

    def test_global_maps_to_total(self):
        assert codes.lookup_region("global") == codes.Dimension("global", "_T", "Global Emerging Markets")

    def test_all_and_overall_are_total_aliases(self):
        assert codes.lookup_sector("all").code == codes.TOTAL
        assert codes.lookup_sector("overall").code == codes.TOTAL
        assert codes.lookup_project_type("all").code == codes.TOTAL

    def test_comparison_sets_have_display_names(self):
        for code in codes.COMPARISON_SECTOR_CODES:
            assert codes.sector_name(code) != code
        for code in codes.COMPARISON_PROJECT_TYPE_CODES:
            assert codes.project_type_name(code) != code

    def test_name_helpers_fall_back_to_code(self):
        assert codes.region_name("XXX") == "XXX"
        assert codes.seniority_name("SS") == "Senior Secured"


class TestDataSource:
    def test_indicator_pairs(self):
        assert DataSource.PUBLIC.default_indicator == "IFC_GEM_PBD"
        assert DataSource.PUBLIC.recovery_indicator == "IFC_GEM_PBR"
        assert DataSource.PRIVATE.default_indicator == "IFC_GEM_PRD"
        assert DataSource.PRIVATE.recovery_indicator == "IFC_GEM_PRR"

    def test_alternative(self):
        assert DataSource.PUBLIC.alternative is DataSource.PRIVATE
        assert DataSource.PRIVATE.alternative is DataSource.PUBLIC

    def test_constructed_from_string(self):
        assert DataSource("private") is DataSource.PRIVATE

    def test_attribution_info_present(self):
        for source in DataSource:
            info = codes.DATA_SOURCE_INFO[source]
            assert {"label", "description", "sample_size"} <= set(info)
