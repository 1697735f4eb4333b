"""
Unit Tests for Extraction Configuration
"""

import pytest
from pathlib import Path
import sys

# Add src to path
src_path = Path(__file__).parent.parent.parent / 'src'
sys.path.insert(0, str(src_path))

from common.config import DEFAULT_CONFIG_PATH, ExtractionConfig, load_default_config


def test_defaults():
    config = ExtractionConfig()

    assert config.batch_size == 1000
    assert config.site_width == 15
    assert config.rejected_dqi_codes == ["Q", "X"]
    assert "WSQ" in config.medium_codes
    assert config.parameter_groups["nutrients"] == "NUT"


@pytest.mark.parametrize("field", ["batch_size", "site_width"])
def test_non_positive_sizes_rejected(field):
    with pytest.raises(ValueError):
        ExtractionConfig(**{field: 0})


def test_from_yaml_overlays_defaults(tmp_path):
    path = tmp_path / "extraction.yaml"
    path.write_text("batch_size: 250\nmedium_codes: [WS]\n")

    config = ExtractionConfig.from_yaml(path)

    assert config.batch_size == 250
    assert config.medium_codes == ["WS"]
    assert config.site_width == 15


def test_shipped_config_matches_defaults():
    config = ExtractionConfig.from_yaml(DEFAULT_CONFIG_PATH)

    assert config.batch_size == 1000
    assert config.rejected_dqi_codes == ["Q", "X"]


def test_env_overrides_batch_size(tmp_path, monkeypatch):
    monkeypatch.setenv("NWIS_BATCH_SIZE", "50")

    config = load_default_config(tmp_path / "missing.yaml")

    assert config.batch_size == 50


def test_invalid_env_batch_size(tmp_path, monkeypatch):
    monkeypatch.setenv("NWIS_BATCH_SIZE", "0")

    with pytest.raises(ValueError):
        load_default_config(tmp_path / "missing.yaml")
