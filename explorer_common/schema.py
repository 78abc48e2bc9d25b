from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import polars as pl


RawRow = Dict[str, Any]

POPULATION_YEARS: Mapping[int, str] = {1990: "90", 2000: "00", 2015: "15"}
LECZ_THRESHOLDS: Sequence[str] = ("5", "10")
POPULATION_TYPES: Mapping[str, str] = {
    "U": "urban_population",
    "R": "rural_population",
    "Q": "quasi_urban_population",
}
DELTA_ZONES: Sequence[str] = ("I", "O")

NRPI_YEARS: Sequence[int] = tuple(range(2019, 2023))
CHI_YEARS: Sequence[int] = tuple(range(2010, 2023))

GRANULARITY_AGGREGATE = "aggregate"
GRANULARITY_ZONE = "zone"


def zone_column(lecz: str, pop_type: str, zone: str, year_suffix: str) -> str:
    """Column header for one LECZ/type/zone/year population cell, e.g. ``5_U_I_GP_90``."""

    return f"{lecz}_{pop_type}_{zone}_GP_{year_suffix}"


def year_suffix(year: int) -> str:
    return str(year)[-2:]


@dataclass(frozen=True)
class RecordBase:
    """Typed core fields plus passthrough columns the normalizer did not consume."""

    def core_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}

    def to_dict(self, include_extra: bool = True) -> Dict[str, Any]:
        core = self.core_dict()
        if not include_extra:
            return core
        # Typed fields win over same-named raw columns.
        return {**getattr(self, "extra", {}), **core}


@dataclass(frozen=True)
class PopulationRecord(RecordBase):
    country: str
    year: int
    granularity: str
    total_population: Optional[float] = None
    urban_population: Optional[float] = None
    rural_population: Optional[float] = None
    quasi_urban_population: Optional[float] = None
    total_land_area: Optional[float] = None
    built_up_area: Optional[float] = None
    lecz05: bool = False
    lecz10: bool = False
    delta: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NRPIRecord(RecordBase):
    country: str
    year: int
    nrpi: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CHIRecord(RecordBase):
    country: str
    iso3: str
    year: int
    child_mortality_rate: Optional[float] = None
    child_mortality_protection: Optional[float] = None
    water_access: Optional[float] = None
    sanitation_access: Optional[float] = None
    child_health_index: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LiteratureRecord(RecordBase):
    publication_year: int
    authors: str = ""
    title: str = ""
    journal: str = ""
    abstract: str = ""
    url: str = ""
    affiliation_country: str = ""
    case_study_area: str = ""
    case_study_countries: str = ""
    theme: str = ""
    main_objective: str = ""
    iav_focus: str = ""
    ssps: int = 0
    ssp1: bool = False
    ssp2: bool = False
    ssp3: bool = False
    ssp4: bool = False
    ssp5: bool = False
    rcps: str = ""
    climate_scenarios: str = ""
    main_method: str = ""
    method_for_ssps: str = ""
    derived_from_ssps: str = ""
    top_down_bottom_up: str = ""
    iiasa_variables_used: str = ""
    stakeholder_involvement: str = ""
    stakeholder_method: str = ""
    main_model_type: str = ""
    main_model_name: str = ""
    climate_model: str = ""
    source_of_climate_data: str = ""
    qualitative: str = ""
    temporal_extent: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CropRecord(RecordBase):
    harvest_year: int
    year: int
    country: str
    crop: str
    admin1: str = ""
    admin2: str = ""
    hectares: float = 0.0
    production: float = 0.0
    yield_: float = 0.0
    notes: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def core_dict(self) -> Dict[str, Any]:
        core = super().core_dict()
        core["yield"] = core.pop("yield_")
        return core


# Ordered header spellings per logical field; the first spelling present in a
# worksheet wins, later ones are fallbacks for blank cells.
AliasMap = Dict[str, Tuple[str, ...]]


def _population_aliases() -> AliasMap:
    aliases: AliasMap = {"country": ("CountryName",)}
    for year, suffix in POPULATION_YEARS.items():
        aliases[f"total_population_{year}"] = (f" gpw_unpop{year} ", f"gpw_unpop{year}")
        # Land-area columns are not part of the published layout; configure them to enable.
        aliases[f"total_land_area_{year}"] = ()
        aliases[f"built_up_area_{year}"] = ()
        for lecz in LECZ_THRESHOLDS:
            for pop_type in POPULATION_TYPES:
                for zone in DELTA_ZONES:
                    col = zone_column(lecz, pop_type, zone, suffix)
                    aliases[col] = (col,)
    return aliases


def _nrpi_aliases() -> AliasMap:
    aliases: AliasMap = {"country": ("Country_Territory_Island",)}
    for year in NRPI_YEARS:
        aliases[f"nrpi_{year}"] = (f"NRPI_v2023_{year_suffix(year)}",)
    return aliases


CHI_METRIC_PREFIXES: Mapping[str, str] = {
    "child_mortality_rate": "CMR",
    "child_mortality_protection": "CHMORT_PT",
    "water_access": "WAT",
    "sanitation_access": "SAN",
    "child_health_index": "CHI_v2023",
}


def _chi_aliases() -> AliasMap:
    aliases: AliasMap = {"country": ("Country_Territory_Island",), "iso3": ("ISO3V10",)}
    for year in CHI_YEARS:
        for metric, prefix in CHI_METRIC_PREFIXES.items():
            aliases[f"{metric}_{year}"] = (f"{prefix}_{year_suffix(year)}",)
    return aliases


LITERATURE_ALIASES: AliasMap = {
    "publication_year": ("Publication Year",),
    "authors": ("Authors",),
    "title": ("Title",),
    "journal": ("Journal",),
    "abstract": ("Abstract",),
    "url": ("URL",),
    "affiliation_country": ("Affiliation first author (country)",),
    "case_study_area": ("Case study area",),
    "case_study_countries": ("Case study countries",),
    "theme": ("Theme",),
    "main_objective": ("Main objective of the study",),
    "iav_focus": ("IAV/other focus",),
    "ssps": ("SSPs",),
    "ssp1": ("SSP1",),
    "ssp2": ("SSP2",),
    "ssp3": ("SSP3",),
    "ssp4": ("SSP4",),
    "ssp5": ("SSP5",),
    "rcps": ("RCPs",),
    "climate_scenarios": ("Climate scenarios",),
    "main_method": ("Main method of the study",),
    "method_for_ssps": ("Main method for developing extended SSPs",),
    "derived_from_ssps": ("Derived from extended SSPs [Y - which one / N]",),
    "top_down_bottom_up": ("Top-down, bottom-up, combined",),
    "iiasa_variables_used": (
        "Were variables from IIASA SSP used? [YES]; If so, what variables of the IIASA SSP database where used?",
    ),
    "stakeholder_involvement": ("Direct stakeholder involvement for the study [Y/N]",),
    "stakeholder_method": ("Stakeholder involvement method in the study [Which one /N]",),
    "main_model_type": ("Main model type [Which type / None]",),
    "main_model_name": ('Main model name [Which model or "No name" / NA]',),
    "climate_model": ("Climate model",),
    "source_of_climate_data": ("Source of climate data",),
    "qualitative": ("Qualitative [N = Narratives; E = Elements / None]",),
    "temporal_extent": ("Temporal extent",),
}

CROP_ALIASES: AliasMap = {
    "year": ("year", "Harvest_year"),
    "harvest_year": ("Harvest_year", "year"),
    "country": ("admin0", "country"),
    "admin1": ("admin1",),
    "admin2": ("admin2",),
    "crop": ("crop",),
    "hectares": ("hectares (ha)", "hectares"),
    "production": ("production (tonnes)", "production"),
    "yield": ("yield(tonnes/ha)", "yield"),
    "notes": ("notes",),
}

DEFAULT_ALIASES: Dict[str, AliasMap] = {
    "population": _population_aliases(),
    "nrpi": _nrpi_aliases(),
    "chi": _chi_aliases(),
    "literature": LITERATURE_ALIASES,
    "crops": CROP_ALIASES,
}


def merge_alias_maps(
    overrides: Mapping[str, Iterable[str] | str] | None,
    base: Mapping[str, Sequence[str]],
) -> AliasMap:
    """
    Merge alias overrides into a base alias map.

    Override spellings are placed ahead of the defaults so they win when both
    headers exist; defaults stay as fallbacks. A bare string counts as a
    single spelling.
    """

    merged: AliasMap = {k: tuple(v) for k, v in base.items()}
    if not overrides:
        return merged
    for logical, spellings in overrides.items():
        if isinstance(spellings, str):
            spellings = [spellings]
        extra = [str(s) for s in spellings]
        existing = [s for s in merged.get(str(logical), ()) if s not in extra]
        merged[str(logical)] = tuple(extra + existing)
    return merged


def resolve_aliases(headers: Iterable[str], aliases: Mapping[str, Sequence[str]]) -> Dict[str, Tuple[str, ...]]:
    """Keep, per logical field, only the alias spellings present in this worksheet (in priority order)."""

    present = set(headers)
    return {logical: tuple(s for s in spellings if s in present) for logical, spellings in aliases.items()}


def consumed_headers(resolved: Mapping[str, Sequence[str]]) -> set[str]:
    used: set[str] = set()
    for spellings in resolved.values():
        used.update(spellings)
    return used


FRAME_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "population": {
        "country": pl.Utf8,
        "year": pl.Int64,
        "granularity": pl.Utf8,
        "total_population": pl.Float64,
        "urban_population": pl.Float64,
        "rural_population": pl.Float64,
        "quasi_urban_population": pl.Float64,
        "total_land_area": pl.Float64,
        "built_up_area": pl.Float64,
        "lecz05": pl.Boolean,
        "lecz10": pl.Boolean,
        "delta": pl.Boolean,
    },
    "nrpi": {"country": pl.Utf8, "year": pl.Int64, "nrpi": pl.Float64},
    "chi": {
        "country": pl.Utf8,
        "iso3": pl.Utf8,
        "year": pl.Int64,
        "child_mortality_rate": pl.Float64,
        "child_mortality_protection": pl.Float64,
        "water_access": pl.Float64,
        "sanitation_access": pl.Float64,
        "child_health_index": pl.Float64,
    },
    "literature": {
        name: (pl.Int64 if name in ("publication_year", "ssps") else pl.Boolean if name.startswith("ssp") else pl.Utf8)
        for name in [f.name for f in fields(LiteratureRecord) if f.name != "extra"]
    },
    "crops": {
        "harvest_year": pl.Int64,
        "year": pl.Int64,
        "country": pl.Utf8,
        "crop": pl.Utf8,
        "admin1": pl.Utf8,
        "admin2": pl.Utf8,
        "hectares": pl.Float64,
        "production": pl.Float64,
        "yield": pl.Float64,
        "notes": pl.Utf8,
    },
}


def records_to_frame(records: Sequence[RecordBase], kind: str, include_extra: bool = False) -> pl.DataFrame:
    """
    Build a Polars frame from normalized records using the fixed schema for ``kind``.

    Passthrough columns are appended as strings when ``include_extra`` is set;
    raw worksheet cells are too irregular to type reliably.
    """

    schema = FRAME_SCHEMAS[kind]
    core_rows = [r.core_dict() for r in records]
    frame = pl.DataFrame(core_rows, schema=schema) if core_rows else pl.DataFrame(schema=schema)
    if not include_extra or not records:
        return frame

    extra_cols: List[str] = []
    for record in records:
        for key in record.extra:
            if key not in schema and key not in extra_cols:
                extra_cols.append(key)
    if not extra_cols:
        return frame
    extras = pl.DataFrame(
        {
            col: [None if r.extra.get(col) is None else str(r.extra.get(col)) for r in records]
            for col in extra_cols
        },
        schema={col: pl.Utf8 for col in extra_cols},
    )
    return pl.concat([frame, extras], how="horizontal")
