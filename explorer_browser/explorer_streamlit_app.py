from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import polars as pl
import streamlit as st

from explorer_browser.explorer_data import dataset_status, load_dataset, load_summary_table
from explorer_common import aggregates as agg
from explorer_common.config import ConfigError, ExplorerConfig, load_config
from explorer_common.normalize import NormalizationReport
from explorer_common.schema import GRANULARITY_AGGREGATE, GRANULARITY_ZONE

LOGGER = logging.getLogger(__name__)

PAGES = {
    "population": "LECZ Population",
    "indices": "NRPI / CHI",
    "literature": "SSP Literature",
    "crops": "Crop Statistics",
}

GLOSSARY: Dict[str, List[Tuple[str, str]]] = {
    "population": [
        (
            "LECZ (Low Elevation Coastal Zone)",
            "Land contiguous to the coast at low elevation. LECZ05 is at or below 5 m above sea level, "
            "LECZ10 between 5 and 10 m.",
        ),
        ("Delta zones", "River delta regions: low-lying, densely populated and exposed to subsidence."),
        ("Quasi-urban", "Settlements between rural and urban density, e.g. large towns and peri-urban areas."),
        ("Urbanization rate", "Urban population / total population x 100."),
    ],
    "indices": [
        (
            "NRPI (Natural Resource Protection Index)",
            "How well a country protects its biomes; 0-100, higher means more protection.",
        ),
        (
            "CHI (Child Health Index)",
            "Composite of child mortality, access to improved water and access to sanitation; 0-100.",
        ),
        ("CMR", "Child mortality rate, deaths under age 5 per 1,000 live births."),
    ],
    "literature": [
        ("SSP (Shared Socioeconomic Pathway)", "Five narratives (SSP1-SSP5) of future socioeconomic development."),
        ("RCP (Representative Concentration Pathway)", "Greenhouse gas trajectories, e.g. RCP4.5 and RCP8.5."),
        ("IAV", "Impacts, adaptation and vulnerability research."),
    ],
    "crops": [
        ("Production", "Harvested quantity in tonnes."),
        ("Yield", "Production per harvested area, tonnes per hectare."),
        ("admin0 / admin1 / admin2", "Country, first-level and second-level administrative units."),
    ],
}


def polars_to_csv_bytes(df: pl.DataFrame, columns: Sequence[str]) -> bytes:
    """Serialize a Polars frame to UTF-8 CSV bytes for download."""

    csv_text = df.select(columns).write_csv()
    return csv_text.encode("utf-8")


def ensure_columns_selected(session_key: str, options: Sequence[str]) -> List[str]:
    """
    Persist column selections in session state.

    An empty selection falls back to all columns.
    """

    default_selection = [c for c in st.session_state.get(session_key, list(options)) if c in options]
    selection = st.multiselect(
        "Columns to show", options=list(options), default=default_selection or list(options), key=session_key
    )
    if not selection:
        selection = list(options)
    return selection


def render_table_section(title: str, table_key: str, df: pl.DataFrame, height: int = 360) -> None:
    """Render a record table with column chooser, download action, and row count."""

    st.markdown(f"### {title} ({df.height} rows)")
    if df.is_empty():
        st.info("No data for current filters.")
        return

    selector_col, download_col = st.columns([3, 1])
    with selector_col:
        selected_columns = ensure_columns_selected(f"{table_key}_columns", df.columns)
    with download_col:
        st.download_button(
            label="Download CSV",
            data=polars_to_csv_bytes(df, selected_columns),
            file_name=f"{table_key}_filtered.csv",
            mime="text/csv",
            use_container_width=True,
        )

    st.dataframe(
        df.select(selected_columns).to_pandas(),
        use_container_width=True,
        hide_index=True,
        height=height,
    )


def render_metrics(metrics: Dict[str, Any]) -> None:
    cols = st.columns(len(metrics))
    for col, (label, value) in zip(cols, metrics.items()):
        col.metric(label, value)


def render_glossary(page: str) -> None:
    with st.expander("Key terms"):
        for term, definition in GLOSSARY[page]:
            st.markdown(f"**{term}**: {definition}")


def render_chart(kind: str, df: pl.DataFrame, **kwargs: Any) -> None:
    if df.is_empty():
        st.info("Nothing to chart for current filters.")
        return
    chart = {"bar": st.bar_chart, "line": st.line_chart, "scatter": st.scatter_chart}[kind]
    chart(df.to_pandas(), **kwargs)


def _fmt(value: Any, digits: int = 1) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, float):
        return f"{value:,.{digits}f}"
    return f"{value:,}" if isinstance(value, int) else str(value)


def load_page_dataset(config: ExplorerConfig, key: str) -> Tuple[pl.DataFrame, NormalizationReport]:
    settings = config.dataset(key)
    df, report = load_dataset(settings)
    if report.raw_row_count == 0:
        st.warning(f"No rows loaded for {settings.title} from {settings.source}.")
    elif report.missing_headers:
        st.caption(f"{settings.title}: {len(report.missing_headers)} expected columns not found in the sheet.")
    return df, report


def render_population_page(config: ExplorerConfig) -> None:
    df, report = load_page_dataset(config, "population")
    st.header(config.dataset("population").title)
    render_glossary("population")
    if df.is_empty():
        return

    years = sorted(df["year"].unique().to_list())
    year = st.sidebar.selectbox("Year", options=[None, *years], format_func=lambda v: "All years" if v is None else str(v))
    delta_only = st.sidebar.checkbox("Delta zones only")
    lecz_only = st.sidebar.checkbox("LECZ zones only")

    zones = agg.filter_population(df, year=year, delta_only=delta_only, lecz_only=lecz_only, granularity=GRANULARITY_ZONE)
    totals = agg.filter_population(df, year=year, granularity=GRANULARITY_AGGREGATE)
    trends = agg.population_trends(agg.filter_population(df, granularity=GRANULARITY_ZONE))
    national = agg.population_trends(agg.filter_population(df, granularity=GRANULARITY_AGGREGATE))

    render_metrics(
        {
            "Countries": _fmt(df["country"].n_unique()),
            "Records": _fmt(report.record_count),
            "Annual growth %": _fmt(agg.annual_growth_rate(national), 2),
            "Urbanization change (pp)": _fmt(agg.urbanization_growth(trends), 2),
            "LECZ10 share %": _fmt(agg.zone_share(df, "lecz10")["percentage"], 2),
            "Delta share %": _fmt(agg.zone_share(df, "delta")["percentage"], 2),
        }
    )

    tab_overview, tab_zones, tab_table, tab_summary = st.tabs(["Overview", "Zones", "Records", "Summary tables"])
    with tab_overview:
        st.subheader("Top countries (zone population)")
        render_chart("bar", agg.top_countries_by_population(zones, n=10), x="country", y="total")
        st.subheader("Population by settlement type")
        render_chart("line", trends, x="year", y=["urban", "rural", "quasi_urban"])
        st.subheader("Most urbanized countries")
        render_chart("bar", agg.urbanization_by_country(df), x="country", y="urbanization_rate")
    with tab_zones:
        st.subheader("Delta vs non-delta")
        render_chart("bar", agg.delta_comparison(df), x="year", y=["delta", "non_delta"])
        st.subheader("LECZ vs national total")
        render_chart("line", agg.lecz_comparison(df), x="year", y=["lecz05", "lecz10", "national_total"])
        area = agg.land_area_trends(totals)
        if area["total_land_area"].sum() > 0 or area["built_up_area"].sum() > 0:
            st.subheader("Land and built-up area")
            render_chart("line", area, x="year", y=["total_land_area", "built_up_area"])
    with tab_table:
        granularity = st.radio("Rows", options=[GRANULARITY_ZONE, GRANULARITY_AGGREGATE], horizontal=True)
        render_table_section("Population records", "population", zones if granularity == GRANULARITY_ZONE else totals)
    with tab_summary:
        summary = load_summary_table(config.dataset("population_summary"))
        if summary.empty:
            st.info("Summary tables workbook not found or empty.")
        else:
            st.dataframe(summary, use_container_width=True, hide_index=True)


def render_indices_page(config: ExplorerConfig) -> None:
    nrpi, _ = load_page_dataset(config, "nrpi")
    chi, _ = load_page_dataset(config, "chi")
    st.header("Natural Resource Protection and Child Health Indices (2023)")
    render_glossary("indices")
    if nrpi.is_empty() and chi.is_empty():
        return

    years = sorted(set(nrpi["year"].to_list()) | set(chi["year"].to_list()))
    latest = agg.latest_year(nrpi, chi)
    year = st.sidebar.selectbox("Year", options=years, index=years.index(latest) if latest in years else 0)

    summary = agg.index_summary(nrpi, chi)
    render_metrics(
        {
            "Latest year": _fmt(summary["year"]),
            "Avg NRPI": _fmt(summary["avg_nrpi"]),
            "Avg CHI": _fmt(summary["avg_chi"]),
            "Avg mortality": _fmt(summary["avg_mortality"]),
            "Avg water access": _fmt(summary["avg_water"]),
            "Avg sanitation": _fmt(summary["avg_sanitation"]),
        }
    )

    tab_rank, tab_trends, tab_relations, tab_table = st.tabs(["Rankings", "Trends", "Relationships", "Records"])
    with tab_rank:
        left, right = st.columns(2)
        with left:
            st.subheader(f"Top NRPI ({year})")
            render_chart("bar", agg.top_by(nrpi, "nrpi", year=year), x="country", y="nrpi")
        with right:
            st.subheader(f"Top CHI ({year})")
            render_chart("bar", agg.top_by(chi, "child_health_index", year=year), x="country", y="child_health_index")
        st.subheader(f"Highest child mortality ({year})")
        render_chart("bar", agg.top_by(chi, "child_mortality_rate", year=year), x="country", y="child_mortality_rate")
        st.subheader("Largest CHI improvement since 2010")
        render_chart("bar", agg.chi_improvement(chi, end_year=year), x="country", y="improvement")
    with tab_trends:
        render_chart("line", agg.chi_trends(chi), x="year", y=["avg_chi", "avg_water", "avg_sanitation"])
        render_chart("line", agg.chi_trends(chi), x="year", y="avg_mortality")
    with tab_relations:
        st.subheader("NRPI vs CHI")
        render_chart("scatter", agg.nrpi_chi_join(nrpi, chi, year), x="nrpi", y="child_health_index")
        st.subheader("Water and sanitation access vs child mortality")
        render_chart("scatter", agg.infrastructure_vs_mortality(chi, year), x="infrastructure", y="mortality")
    with tab_table:
        render_table_section("NRPI records", "nrpi", nrpi.filter(pl.col("year") == year))
        render_table_section("CHI records", "chi", chi.filter(pl.col("year") == year))


def render_literature_page(config: ExplorerConfig) -> None:
    df, _ = load_page_dataset(config, "literature")
    st.header(config.dataset("literature").title)
    render_glossary("literature")
    if df.is_empty():
        return

    years = sorted(df["publication_year"].unique().to_list())
    year = st.sidebar.selectbox("Publication year", options=[None, *years], format_func=lambda v: "All years" if v is None else str(v))
    ssp = st.sidebar.selectbox("SSP", options=[None, *agg.SSP_FLAGS], format_func=lambda v: "Any SSP" if v is None else v.upper())
    filtered = agg.filter_literature(df, year=year, ssp=ssp)

    summary = agg.literature_summary(filtered)
    render_metrics(
        {
            "Papers": _fmt(summary["total_papers"]),
            "Avg SSPs / paper": _fmt(summary["avg_ssps_per_paper"], 2),
            "With stakeholders %": _fmt(summary["stakeholder_percentage"]),
            "Case-study countries": _fmt(summary["unique_countries"]),
            "Journals": _fmt(summary["unique_journals"]),
        }
    )

    tab_overview, tab_topics, tab_methods, tab_table = st.tabs(["Overview", "Topics", "Methods", "Records"])
    with tab_overview:
        st.subheader("Publications per year")
        render_chart("bar", agg.publication_trends(filtered), x="publication_year", y=["with_stakeholder", "without_stakeholder"])
        st.subheader("SSP usage")
        render_chart("bar", agg.ssp_usage(filtered), x="name", y="count")
        st.subheader("Papers by number of SSPs")
        render_chart("bar", agg.ssp_count_distribution(filtered), x="ssps", y="papers")
    with tab_topics:
        st.subheader("Themes")
        render_chart("bar", agg.exploded_counts(filtered, "theme"), x="name", y="count")
        st.subheader("Case-study countries")
        render_chart("bar", agg.exploded_counts(filtered, "case_study_countries"), x="name", y="count")
        st.subheader("First-author affiliation")
        render_chart("bar", agg.exploded_counts(filtered, "affiliation_country", splitter=agg.single_value), x="name", y="count")
        st.subheader("Journals")
        render_chart("bar", agg.exploded_counts(filtered, "journal", n=10, splitter=agg.single_value), x="name", y="count")
    with tab_methods:
        st.subheader("RCPs")
        render_chart("bar", agg.exploded_counts(filtered, "rcps", splitter=agg.split_rcps), x="name", y="count")
        st.subheader("IAV focus")
        render_chart("bar", agg.exploded_counts(filtered, "iav_focus", splitter=agg.single_value), x="name", y="count")
        st.subheader("Model types")
        render_chart(
            "bar",
            agg.exploded_counts(filtered, "main_model_type", splitter=agg.single_value, exclude=("None", "NA")),
            x="name",
            y="count",
        )
    with tab_table:
        render_table_section("Citations", "literature", filtered)


def render_crops_page(config: ExplorerConfig) -> None:
    df, _ = load_page_dataset(config, "crops")
    st.header(config.dataset("crops").title)
    render_glossary("crops")
    if df.is_empty():
        return

    crops = sorted(df["crop"].unique().to_list())
    countries = sorted(df["country"].unique().to_list())
    crop = st.sidebar.selectbox("Crop", options=[None, *crops], format_func=lambda v: "All crops" if v is None else str(v))
    country = st.sidebar.selectbox(
        "Country", options=[None, *countries], format_func=lambda v: "All countries" if v is None else str(v)
    )
    filtered = agg.filter_crops(df, crop=crop, country=country)

    summary = agg.crop_summary(filtered)
    render_metrics(
        {
            "Records": _fmt(summary["records"]),
            "Crops": _fmt(summary["unique_crops"]),
            "Countries": _fmt(summary["countries"]),
            "Years": f"{summary['year_min']}-{summary['year_max']}" if summary["records"] else "n/a",
            "Production (t)": _fmt(summary["total_production"], 0),
            "Avg yield (t/ha)": _fmt(summary["avg_yield"], 2),
        }
    )

    tab_time, tab_countries, tab_table = st.tabs(["Over time", "Countries", "Records"])
    with tab_time:
        st.subheader("Production by crop")
        render_chart("line", agg.production_by_crop_over_time(filtered), x="year", y="production", color="crop")
        st.subheader("Yield by crop")
        render_chart("line", agg.yield_by_crop_over_time(filtered), x="year", y="yield", color="crop")
        st.subheader("Production share by crop")
        render_chart("bar", agg.crop_distribution(filtered), x="crop", y="total")
    with tab_countries:
        prod_year, top_production = agg.top_countries_by(filtered, "production")
        st.subheader(f"Top producers ({prod_year or 'n/a'})")
        render_chart("bar", top_production, x="country", y="production")
        yield_year, top_yield = agg.top_countries_by(filtered, "yield", how="mean")
        st.subheader(f"Highest yields ({yield_year or 'n/a'})")
        render_chart("bar", top_yield, x="country", y="yield")
    with tab_table:
        render_table_section("Crop records", "crops", filtered)


RENDERERS = {
    "population": render_population_page,
    "indices": render_indices_page,
    "literature": render_literature_page,
    "crops": render_crops_page,
}


def load_config_sidebar() -> ExplorerConfig:
    """Resolve the YAML config and an optional data-root override from the sidebar."""

    st.sidebar.header("Data Source")
    try:
        config = load_config()
    except ConfigError as exc:
        st.error(f"Invalid configuration: {exc}")
        st.stop()

    data_root = st.sidebar.text_input("Data root", value=str(config.data_root), key="data_root")
    root = Path(data_root).expanduser()
    if root != config.data_root:
        config = config.with_data_root(root)
    if config.path is not None:
        st.sidebar.caption(f"Config: {config.path}")
    return config


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    st.set_page_config(page_title="Dataset Explorer", layout="wide")
    st.title("Climate, Population and Agriculture Dataset Explorer")

    config = load_config_sidebar()
    page = st.sidebar.radio("Dataset", options=list(PAGES), format_func=PAGES.get, key="page")

    with st.sidebar.expander("Dataset files"):
        st.dataframe(pl.DataFrame(dataset_status(config)).to_pandas(), hide_index=True)

    st.sidebar.header("Filters")
    try:
        RENDERERS[page](config)
    except Exception as exc:  # pragma: no cover - surfaced in UI
        LOGGER.exception("Failed to render %s page", page)
        st.error(f"Failed to render {PAGES[page]}: {exc}")


if __name__ == "__main__":
    main()
