"""
Chart-ready aggregations over normalized record frames.

Each function takes the Polars frame produced by ``records_to_frame`` and
returns a small frame (or dict of metrics) for one dashboard widget. Nothing
here re-normalizes data; filters are plain column predicates.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import polars as pl

from .coerce import coerce_text, split_multi_value
from .schema import GRANULARITY_AGGREGATE, GRANULARITY_ZONE

SSP_FLAGS: Sequence[str] = ("ssp1", "ssp2", "ssp3", "ssp4", "ssp5")
_RCP_DELIMS = re.compile(r"[;,\s]+")


def _zone(df: pl.DataFrame) -> pl.DataFrame:
    return df.filter(pl.col("granularity") == GRANULARITY_ZONE)


def _aggregate(df: pl.DataFrame) -> pl.DataFrame:
    return df.filter(pl.col("granularity") == GRANULARITY_AGGREGATE)


def latest_year(*frames: pl.DataFrame, column: str = "year") -> Optional[int]:
    years = [frame[column].max() for frame in frames if not frame.is_empty() and column in frame.columns]
    years = [y for y in years if y is not None]
    return int(max(years)) if years else None


def _share(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


# --- population ------------------------------------------------------------


def filter_population(
    df: pl.DataFrame,
    year: int | None = None,
    delta_only: bool = False,
    lecz_only: bool = False,
    granularity: str | None = None,
) -> pl.DataFrame:
    """
    Narrow population records for the current view.

    ``granularity`` picks aggregate country totals or the zone breakdown;
    leaving it unset keeps both, which double counts when summed.
    """

    if granularity is not None:
        df = df.filter(pl.col("granularity") == granularity)
    if year is not None:
        df = df.filter(pl.col("year") == year)
    if delta_only:
        df = df.filter(pl.col("delta"))
    if lecz_only:
        df = df.filter(pl.col("lecz05") | pl.col("lecz10"))
    return df


def top_countries_by_population(df: pl.DataFrame, n: int = 10) -> pl.DataFrame:
    if df.is_empty():
        return pl.DataFrame(schema={"country": pl.Utf8, "total": pl.Float64})
    return (
        df.group_by("country")
        .agg(pl.col("total_population").fill_null(0).sum().alias("total"))
        .sort(["total", "country"], descending=[True, False])
        .head(n)
    )


def population_trends(df: pl.DataFrame) -> pl.DataFrame:
    """Per-year sums of total, urban, rural and quasi-urban population."""

    return (
        df.group_by("year")
        .agg(
            pl.col("total_population").fill_null(0).sum().alias("total"),
            pl.col("urban_population").fill_null(0).sum().alias("urban"),
            pl.col("rural_population").fill_null(0).sum().alias("rural"),
            pl.col("quasi_urban_population").fill_null(0).sum().alias("quasi_urban"),
        )
        .sort("year")
    )


def delta_comparison(df: pl.DataFrame) -> pl.DataFrame:
    """Per-year zone population inside vs outside deltas."""

    total = pl.col("total_population").fill_null(0)
    return (
        _zone(df)
        .group_by("year")
        .agg(
            total.filter(pl.col("delta")).sum().alias("delta"),
            total.filter(~pl.col("delta")).sum().alias("non_delta"),
        )
        .sort("year")
    )


def lecz_comparison(df: pl.DataFrame) -> pl.DataFrame:
    """Per-year 5 m and 10 m LECZ population next to the national total."""

    total = pl.col("total_population").fill_null(0)
    is_zone = pl.col("granularity") == GRANULARITY_ZONE
    return (
        df.group_by("year")
        .agg(
            total.filter(is_zone & pl.col("lecz05")).sum().alias("lecz05"),
            total.filter(is_zone & pl.col("lecz10")).sum().alias("lecz10"),
            total.filter(pl.col("granularity") == GRANULARITY_AGGREGATE).sum().alias("national_total"),
        )
        .sort("year")
    )


def land_area_trends(df: pl.DataFrame) -> pl.DataFrame:
    return (
        df.group_by("year")
        .agg(
            pl.col("total_land_area").fill_null(0).sum().alias("total_land_area"),
            pl.col("built_up_area").fill_null(0).sum().alias("built_up_area"),
        )
        .sort("year")
    )


def urbanization_by_country(df: pl.DataFrame, n: int = 15) -> pl.DataFrame:
    """Urban share of each country's zone population in the latest year."""

    year = latest_year(df)
    empty = pl.DataFrame(schema={"country": pl.Utf8, "urbanization_rate": pl.Float64})
    if year is None:
        return empty
    zone = _zone(df).filter(pl.col("year") == year)
    if zone.is_empty():
        return empty
    return (
        zone.group_by("country")
        .agg(
            pl.col("total_population").fill_null(0).sum().alias("total"),
            pl.col("urban_population").fill_null(0).sum().alias("urban"),
        )
        .with_columns(
            pl.when(pl.col("total") > 0)
            .then(pl.col("urban") / pl.col("total") * 100)
            .otherwise(0.0)
            .alias("urbanization_rate")
        )
        .select(["country", "urbanization_rate"])
        .sort(["urbanization_rate", "country"], descending=[True, False])
        .head(n)
    )


def annual_growth_rate(trends: pl.DataFrame) -> float:
    """Average annual growth (percent) between the first and last year of ``population_trends``."""

    if trends.height < 2:
        return 0.0
    first, last = trends.row(0, named=True), trends.row(-1, named=True)
    if not first["total"] or last["year"] == first["year"]:
        return 0.0
    total_growth = (last["total"] - first["total"]) / first["total"] * 100
    return total_growth / (last["year"] - first["year"])


def urbanization_growth(trends: pl.DataFrame) -> float:
    """Percentage-point change of the urban share between the first and last year."""

    if trends.height < 2:
        return 0.0
    first, last = trends.row(0, named=True), trends.row(-1, named=True)
    return _share(last["urban"], last["total"]) - _share(first["urban"], first["total"])


def zone_share(df: pl.DataFrame, flag: str) -> Dict[str, float]:
    """
    Latest-year population in zones marked ``flag`` (lecz05, lecz10 or delta)
    as a share of the national totals.
    """

    year = latest_year(df)
    if year is None:
        return {"total": 0.0, "zone": 0.0, "percentage": 0.0}
    latest = df.filter(pl.col("year") == year)
    total = float(_aggregate(latest)["total_population"].fill_null(0).sum())
    zone = float(_zone(latest).filter(pl.col(flag))["total_population"].fill_null(0).sum())
    return {"total": total, "zone": zone, "percentage": _share(zone, total)}


# --- NRPI / CHI --------------------------------------------------------------


def top_by(
    df: pl.DataFrame,
    column: str,
    year: int | None = None,
    n: int = 15,
    descending: bool = True,
) -> pl.DataFrame:
    if year is not None:
        df = df.filter(pl.col("year") == year)
    return (
        df.filter(pl.col(column).is_not_null())
        .select(["country", column])
        .sort([column, "country"], descending=[descending, False])
        .head(n)
    )


def chi_trends(chi: pl.DataFrame) -> pl.DataFrame:
    """Per-year means of the CHI components; blank metrics are left out of the mean."""

    return (
        chi.group_by("year")
        .agg(
            pl.col("child_health_index").mean().alias("avg_chi"),
            pl.col("child_mortality_rate").mean().alias("avg_mortality"),
            pl.col("water_access").mean().alias("avg_water"),
            pl.col("sanitation_access").mean().alias("avg_sanitation"),
        )
        .sort("year")
    )


def nrpi_chi_join(nrpi: pl.DataFrame, chi: pl.DataFrame, year: int) -> pl.DataFrame:
    """
    Pair NRPI and CHI scores for one year by exact country name.

    Names are not canonicalized, so spelling differences between the sheets
    drop those countries from the result.
    """

    left = nrpi.filter((pl.col("year") == year) & pl.col("nrpi").is_not_null()).select(["country", "nrpi"])
    right = chi.filter((pl.col("year") == year) & pl.col("child_health_index").is_not_null()).select(
        ["country", "child_health_index", "child_mortality_rate"]
    )
    return left.join(right, on="country", how="inner").sort("country")


def chi_improvement(
    chi: pl.DataFrame,
    start_year: int = 2010,
    end_year: int | None = None,
    n: int = 15,
) -> pl.DataFrame:
    end_year = end_year if end_year is not None else latest_year(chi)
    if end_year is None:
        return pl.DataFrame(schema={"country": pl.Utf8, "improvement": pl.Float64})

    def _at(year: int, alias: str) -> pl.DataFrame:
        return chi.filter((pl.col("year") == year) & pl.col("child_health_index").is_not_null()).select(
            ["country", pl.col("child_health_index").alias(alias)]
        )

    return (
        _at(start_year, "start").join(_at(end_year, "end"), on="country", how="inner")
        .with_columns((pl.col("end") - pl.col("start")).alias("improvement"))
        .select(["country", "improvement"])
        .sort(["improvement", "country"], descending=[True, False])
        .head(n)
    )


def infrastructure_vs_mortality(chi: pl.DataFrame, year: int) -> pl.DataFrame:
    """Mean of water and sanitation access against child mortality, complete rows only."""

    return (
        chi.filter(
            (pl.col("year") == year)
            & pl.col("water_access").is_not_null()
            & pl.col("sanitation_access").is_not_null()
            & pl.col("child_mortality_rate").is_not_null()
        )
        .select(
            [
                "country",
                ((pl.col("water_access") + pl.col("sanitation_access")) / 2).alias("infrastructure"),
                pl.col("child_mortality_rate").alias("mortality"),
            ]
        )
        .sort("country")
    )


def index_summary(nrpi: pl.DataFrame, chi: pl.DataFrame) -> Dict[str, Any]:
    year = latest_year(nrpi, chi)
    summary: Dict[str, Any] = {"year": year}
    latest_chi = chi.filter(pl.col("year") == year) if year is not None else chi.clear()
    latest_nrpi = nrpi.filter(pl.col("year") == year) if year is not None else nrpi.clear()
    for key, column in (
        ("avg_chi", "child_health_index"),
        ("avg_mortality", "child_mortality_rate"),
        ("avg_water", "water_access"),
        ("avg_sanitation", "sanitation_access"),
    ):
        summary[key] = latest_chi[column].mean() if not latest_chi.is_empty() else None
    summary["avg_nrpi"] = latest_nrpi["nrpi"].mean() if not latest_nrpi.is_empty() else None
    summary["nrpi_countries"] = nrpi["country"].n_unique()
    summary["chi_countries"] = chi["country"].n_unique()
    return summary


# --- literature ------------------------------------------------------------


def split_rcps(value: Any) -> List[str]:
    """RCP cells use whitespace as a separator too ("RCP4.5 RCP8.5")."""

    return [token for token in _RCP_DELIMS.split(coerce_text(value)) if token]


def single_value(value: Any) -> List[str]:
    text = coerce_text(value).strip()
    return [text] if text else []


def filter_literature(df: pl.DataFrame, year: int | None = None, ssp: str | None = None) -> pl.DataFrame:
    if year is not None:
        df = df.filter(pl.col("publication_year") == year)
    if ssp is not None:
        df = df.filter(pl.col(ssp.lower()))
    return df


def publication_trends(df: pl.DataFrame) -> pl.DataFrame:
    return (
        df.group_by("publication_year")
        .agg(
            pl.len().alias("count"),
            (pl.col("stakeholder_involvement") == "Y").sum().alias("with_stakeholder"),
            (pl.col("stakeholder_involvement") == "N").sum().alias("without_stakeholder"),
        )
        .sort("publication_year")
    )


def ssp_usage(df: pl.DataFrame) -> pl.DataFrame:
    counts = [(flag.upper(), int(df[flag].sum()) if not df.is_empty() else 0) for flag in SSP_FLAGS]
    return pl.DataFrame(
        [(name, count) for name, count in counts if count > 0],
        schema={"name": pl.Utf8, "count": pl.Int64},
        orient="row",
    )


def exploded_counts(
    df: pl.DataFrame,
    column: str,
    n: int | None = 15,
    splitter: Callable[[Any], List[str]] = split_multi_value,
    exclude: Iterable[str] = (),
) -> pl.DataFrame:
    """Count tokens of a (possibly multi-valued) text column, most frequent first."""

    excluded = set(exclude)
    counter: Counter = Counter()
    for value in df[column].to_list() if column in df.columns else []:
        counter.update(token for token in splitter(value) if token not in excluded)
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    if n is not None:
        ranked = ranked[:n]
    return pl.DataFrame(ranked, schema={"name": pl.Utf8, "count": pl.Int64}, orient="row")


def ssp_count_distribution(df: pl.DataFrame) -> pl.DataFrame:
    return (
        df.filter(pl.col("ssps") > 0)
        .group_by("ssps")
        .agg(pl.len().alias("papers"))
        .sort("ssps")
    )


def literature_summary(df: pl.DataFrame) -> Dict[str, Any]:
    total = df.height
    with_stakeholder = int((df["stakeholder_involvement"] == "Y").sum()) if total else 0
    countries = set()
    for value in df["case_study_countries"].to_list() if total else []:
        countries.update(split_multi_value(value))
    journals = {j.strip() for j in (df["journal"].to_list() if total else []) if j and j.strip()}
    return {
        "total_papers": total,
        "avg_ssps_per_paper": float(df["ssps"].mean()) if total else 0.0,
        "with_stakeholder": with_stakeholder,
        "stakeholder_percentage": _share(with_stakeholder, total),
        "unique_countries": len(countries),
        "unique_journals": len(journals),
    }


# --- crops -------------------------------------------------------------------


def filter_crops(
    df: pl.DataFrame,
    year: int | None = None,
    crop: str | None = None,
    country: str | None = None,
) -> pl.DataFrame:
    if year is not None:
        df = df.filter(pl.col("year") == year)
    if crop is not None:
        df = df.filter(pl.col("crop") == crop)
    if country is not None:
        df = df.filter(pl.col("country") == country)
    return df


def crop_summary(df: pl.DataFrame) -> Dict[str, Any]:
    if df.is_empty():
        return {
            "records": 0,
            "unique_crops": 0,
            "countries": 0,
            "year_min": None,
            "year_max": None,
            "total_production": 0.0,
            "avg_yield": None,
            "total_hectares": 0.0,
        }
    positive_yield = df.filter(pl.col("yield") > 0)["yield"]
    return {
        "records": df.height,
        "unique_crops": df["crop"].n_unique(),
        "countries": df["country"].n_unique(),
        "year_min": int(df["year"].min()),
        "year_max": int(df["year"].max()),
        "total_production": float(df["production"].sum()),
        "avg_yield": float(positive_yield.mean()) if positive_yield.len() else None,
        "total_hectares": float(df["hectares"].sum()),
    }


def production_by_crop_over_time(df: pl.DataFrame) -> pl.DataFrame:
    return (
        df.filter(pl.col("production") > 0)
        .group_by(["year", "crop"])
        .agg(pl.col("production").sum())
        .sort(["year", "crop"])
    )


def yield_by_crop_over_time(df: pl.DataFrame) -> pl.DataFrame:
    return (
        df.filter(pl.col("yield") > 0)
        .group_by(["year", "crop"])
        .agg(pl.col("yield").mean())
        .sort(["year", "crop"])
    )


def top_countries_by(
    df: pl.DataFrame,
    column: str,
    n: int = 15,
    min_countries: int = 10,
    how: str = "sum",
) -> tuple[Optional[int], pl.DataFrame]:
    """
    Rank countries by ``column`` in the most recent year that has at least
    ``min_countries`` reporting countries (falls back to the latest year).

    Returns (year used, ranking).
    """

    reporting = df.filter(pl.col(column) > 0)
    empty = pl.DataFrame(schema={"country": pl.Utf8, column: pl.Float64})
    if reporting.is_empty():
        return None, empty

    per_year = reporting.group_by("year").agg(pl.col("country").n_unique().alias("countries"))
    eligible = per_year.filter(pl.col("countries") >= min_countries)
    year = int((eligible if not eligible.is_empty() else per_year)["year"].max())

    agg = pl.col(column).mean() if how == "mean" else pl.col(column).sum()
    ranking = (
        reporting.filter(pl.col("year") == year)
        .group_by("country")
        .agg(agg)
        .sort([column, "country"], descending=[True, False])
        .head(n)
    )
    return year, ranking


def crop_distribution(df: pl.DataFrame) -> pl.DataFrame:
    return (
        df.filter(pl.col("production") > 0)
        .group_by("crop")
        .agg(pl.col("production").sum().alias("total"))
        .sort(["total", "crop"], descending=[True, False])
    )
