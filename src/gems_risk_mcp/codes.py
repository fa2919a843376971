"""
IFC GEMs dimension codes
Maps the slugs exposed to Claude onto Data360 short codes and display names
"""

from enum import Enum
from typing import NamedTuple


DATABASE_ID = "IFC_GEM"

# Historical private dataset carrying counterpart counts and signed amounts
HISTORICAL_INDICATOR = "IFC_GEM_PRD_H"

DEFAULT_RATE_METRIC = "ADR"     # Average Default Rate (percentage)
RECOVERY_RATE_METRIC = "ARR"    # Average Recovery Rate (percentage)
COUNTERPART_METRIC = "CP"       # Counterparts (count of entities)
SIGNED_AMOUNT_METRIC = "SA"     # Signed Amount (USD millions)

TOTAL = "_T"
PERCENT_UNIT = "PT"


class Dimension(NamedTuple):
    slug: str
    code: str
    name: str


# ============================================================================
# Regions
# ============================================================================

REGION_DISPLAY_NAMES = {
    "_T": "Global Emerging Markets",
    "EAS": "East Asia & Pacific",
    "ECS": "Europe & Central Asia",
    "LCN": "Latin America & Caribbean",
    "MEA": "Middle East & North Africa",
    "SAS": "South Asia",
    "SSF": "Sub-Saharan Africa",
}

REGION_CODES = {
    "global": "_T",
    "east-asia": "EAS",
    "latin-america": "LCN",
    "sub-saharan-africa": "SSF",
    "south-asia": "SAS",
    "mena": "MEA",
    "europe-central-asia": "ECS",
}


# ============================================================================
# Sectors (IFC categories + GICS)
# ============================================================================

SECTOR_DISPLAY_NAMES = {
    "_T": "Overall",
    "_Z": "Not applicable",
    # IFC-specific categories
    "NF": "Non-financial institutions",
    "FI": "Financial Institutions",
    "BK": "Banking",
    "IN": "Infrastructure",
    "NB": "Non-banking financial institutions",
    "R": "Renewables",
    "S": "Services",
    # GICS sectors
    "F": "GICS: Financials",
    "U": "GICS: Utilities",
    "I": "GICS: Industrials",
    "CST": "GICS: Consumer Staples",
    "CD": "GICS: Consumer Discretionary",
    "M": "GICS: Materials",
    "O": "GICS: Others",
    "CS": "GICS: Communication Services",
    "HC": "GICS: Health Care",
    "E": "GICS: Energy",
    "RE": "GICS: Real Estate",
    "IT": "GICS: Information Technology",
    "A": "GICS: Administration",
}

SECTOR_CODES = {
    "all": "_T",
    "overall": "_T",
    "non-financial": "NF",
    "financial-institutions": "FI",
    "banking": "BK",
    "infrastructure": "IN",
    "non-banking": "NB",
    "renewables": "R",
    "services": "S",
    "financials": "F",
    "utilities": "U",
    "industrials": "I",
    "consumer-staples": "CST",
    "consumer-discretionary": "CD",
    "materials": "M",
    "others": "O",
    "communication-services": "CS",
    "health-care": "HC",
    "energy": "E",
    "real-estate": "RE",
    "information-technology": "IT",
    "administration": "A",
}

# Sectors with enough observations to be worth a comparison table
COMPARISON_SECTOR_CODES = ("F", "I", "E", "U", "IN", "BK", "NF", "R")


# ============================================================================
# Project types
# ============================================================================

PROJECT_TYPE_DISPLAY_NAMES = {
    "_Z": "Not applicable",
    "_T": "Overall, incl. omitted categories",
    "O": "Other",
    "CF": "Corporate Finance",
    "FI": "Financial Institutions",
    "PF": "Project Finance",
    "SF": "Structured Finance",
    "MX": "Mixed",
}

PROJECT_TYPE_CODES = {
    "all": "_T",
    "overall": "_T",
    "corporate-finance": "CF",
    "project-finance": "PF",
    "financial-institutions": "FI",
    "structured-finance": "SF",
    "mixed": "MX",
    "other": "O",
}

COMPARISON_PROJECT_TYPE_CODES = ("CF", "PF", "FI", "SF", "MX", "O")


# ============================================================================
# Seniority (debt hierarchy)
# ============================================================================

SENIORITY_DISPLAY_NAMES = {
    "_T": "All Seniority Levels",
    "SS": "Senior Secured",
    "SU": "Senior Unsecured",
}

SENIORITY_CODES = {
    "all": "_T",
    "senior-secured": "SS",
    "senior-unsecured": "SU",
}


# ============================================================================
# Data sources
# ============================================================================

class DataSource(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @property
    def default_indicator(self) -> str:
        return INDICATORS[self]["default"]

    @property
    def recovery_indicator(self) -> str:
        return INDICATORS[self]["recovery"]

    @property
    def alternative(self) -> "DataSource":
        return DataSource.PRIVATE if self is DataSource.PUBLIC else DataSource.PUBLIC


INDICATORS = {
    DataSource.PUBLIC: {"default": "IFC_GEM_PBD", "recovery": "IFC_GEM_PBR"},
    DataSource.PRIVATE: {"default": "IFC_GEM_PRD", "recovery": "IFC_GEM_PRR"},
}

DATA_SOURCE_INFO = {
    DataSource.PUBLIC: {
        "label": "PUBLIC SECTOR dataset (IFC_GEM_PBD/PBR)",
        "description": "Government and public sector lending (sovereign, sub-sovereign)",
        "sample_size": "~619 default observations, ~172 recovery observations",
    },
    DataSource.PRIVATE: {
        "label": "PRIVATE SECTOR dataset (IFC_GEM_PRD/PRR)",
        "description": "Private sector lending (corporate, financial institutions, projects)",
        "sample_size": "~2,853 default observations, ~1,269 recovery observations (4-7x more data)",
    },
}


# ============================================================================
# Lookups
# ============================================================================

def _lookup(slug: str | None, codes: dict[str, str], names: dict[str, str]) -> Dimension | None:
    if not isinstance(slug, str):
        return None
    key = slug.strip().lower()
    code = codes.get(key)
    if code is None:
        return None
    return Dimension(key, code, names.get(code, code))


def lookup_region(slug: str | None) -> Dimension | None:
    return _lookup(slug, REGION_CODES, REGION_DISPLAY_NAMES)


def lookup_sector(slug: str | None) -> Dimension | None:
    return _lookup(slug, SECTOR_CODES, SECTOR_DISPLAY_NAMES)


def lookup_project_type(slug: str | None) -> Dimension | None:
    return _lookup(slug, PROJECT_TYPE_CODES, PROJECT_TYPE_DISPLAY_NAMES)


def lookup_seniority(slug: str | None) -> Dimension | None:
    return _lookup(slug, SENIORITY_CODES, SENIORITY_DISPLAY_NAMES)


def region_name(code: str) -> str:
    return REGION_DISPLAY_NAMES.get(code, code)


def sector_name(code: str) -> str:
    return SECTOR_DISPLAY_NAMES.get(code, code)


def project_type_name(code: str) -> str:
    return PROJECT_TYPE_DISPLAY_NAMES.get(code, code)


def seniority_name(code: str) -> str:
    return SENIORITY_DISPLAY_NAMES.get(code, code)
