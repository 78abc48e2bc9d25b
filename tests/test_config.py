from pathlib import Path

import pytest

from explorer_common.config import CONFIG_ENV_KEY, ConfigError, DEFAULT_DATASETS, default_config, load_config


def test_missing_config_uses_defaults(tmp_path):
    """Without a config file every dataset falls back to its built-in settings."""
    config = load_config(Path(tmp_path) / "absent.yaml")
    assert config.path is None
    assert set(config.datasets) == set(DEFAULT_DATASETS)
    assert config.dataset("population").header_row == 5
    assert config.dataset("literature").sheet == "Citations"


def test_env_var_locates_config(tmp_path, monkeypatch):
    """The config path can come from the environment; relative roots resolve against the file."""
    path = Path(tmp_path) / "explorer.yaml"
    path.write_text("data_root: data\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_KEY, str(path))

    config = load_config()

    assert config.path == path
    assert config.data_root == (Path(tmp_path) / "data").resolve()
    assert config.dataset("crops").source == config.data_root / DEFAULT_DATASETS["crops"].source


def test_dataset_overrides(tmp_path):
    """Per-dataset source, sheet, header row and column aliases can be overridden."""
    path = Path(tmp_path) / "config.yaml"
    path.write_text(
        """
data_root: .
datasets:
  crops:
    source: crops/stats.xlsx
    sheet: Sheet2
    header_row: 2
    columns:
      production: "Production (t)"
      yield: ["Yield t/ha", "yield_t_ha"]
""",
        encoding="utf-8",
    )

    crops = load_config(path).dataset("crops")

    assert crops.source == (Path(tmp_path) / "crops" / "stats.xlsx").resolve()
    assert crops.sheet == "Sheet2"
    assert crops.header_row == 2
    assert crops.columns == {"production": ["Production (t)"], "yield": ["Yield t/ha", "yield_t_ha"]}


@pytest.mark.parametrize(
    "content",
    [
        "datasets: [1, 2]",
        "datasets:\n  unknown: {}",
        "datasets:\n  crops:\n    header_row: -1",
        "datasets:\n  crops:\n    header_row: top",
        "datasets:\n  crops:\n    columns: [a]",
        "- just\n- a list",
        "data_root: [unclosed",
    ],
)
def test_invalid_config_raises(tmp_path, content):
    """Malformed or unknown config entries raise ConfigError."""
    path = Path(tmp_path) / "bad.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_unknown_dataset_lookup_raises():
    """Looking up a dataset that is not configured raises ConfigError."""
    with pytest.raises(ConfigError):
        default_config().dataset("weather")


def test_with_data_root_moves_default_sources_only(tmp_path):
    """A new data root relocates default sources but leaves absolute overrides alone."""
    path = Path(tmp_path) / "config.yaml"
    path.write_text("datasets:\n  crops:\n    source: /fixed/crops.xlsx\n", encoding="utf-8")
    config = load_config(path).with_data_root(Path(tmp_path) / "elsewhere")

    assert config.dataset("crops").source == Path("/fixed/crops.xlsx").resolve()
    assert config.dataset("nrpi").source == Path(tmp_path) / "elsewhere" / DEFAULT_DATASETS["nrpi"].source
