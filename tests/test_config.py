"""Tests for configuration management."""

import pytest
import yaml

from rastersmith.config import (
    DEFAULT_CONFIG_PATH,
    ConfigManager,
    get_config,
    get_config_value,
    load_config,
)


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_dotted_access(self):
        """Test nested lookups, defaults and membership."""
        config = ConfigManager({"carbon": {"fit_scale": 250, "percentiles": [33, 66]}})

        assert config.get("carbon.fit_scale") == 250
        assert config.get("carbon.missing", "fallback") == "fallback"
        assert config.get("carbon.fit_scale.deeper") is None
        assert "carbon.percentiles" in config
        assert "salinity" not in config

    def test_require(self):
        """Test required keys raise when missing."""
        config = ConfigManager({"a": {"b": None}})

        assert config.require("a.b") is None
        with pytest.raises(KeyError, match="a.c"):
            config.require("a.c")

    def test_set_creates_sections(self):
        """Test set builds intermediate sections and refuses scalars."""
        config = ConfigManager()
        config.set("execution.max_workers", 8)

        assert config.get("execution.max_workers") == 8
        with pytest.raises(ValueError):
            config.set("execution.max_workers.inner", 1)

    def test_merge_is_recursive_and_pure(self):
        """Test merging overrides leaves the original untouched."""
        base = ConfigManager({"carbon": {"fit_scale": 250, "class_scale": 100}})

        merged = base.merge({"carbon": {"fit_scale": 5000}})

        assert merged.get("carbon.fit_scale") == 5000
        assert merged.get("carbon.class_scale") == 100
        assert base.get("carbon.fit_scale") == 250

    def test_as_dict_is_a_copy(self):
        """Test callers cannot mutate the manager through as_dict."""
        config = ConfigManager({"a": {"b": 1}})
        data = config.as_dict()
        data["a"]["b"] = 2

        assert config.get("a.b") == 1


class TestLoading:
    """Tests for YAML loading and package defaults."""

    def test_defaults(self):
        """Test the packaged defaults carry every analysis section."""
        config = get_config()

        assert DEFAULT_CONFIG_PATH.exists()
        for section in ("region", "execution", "budget", "carbon", "coastline", "salinity"):
            assert section in config
        assert config.get("carbon.percentiles") == [33, 66]
        assert config.get("coastline.water_threshold") == pytest.approx(0.1)
        assert config.get("salinity.valid_range") == [20.0, 40.0]

    def test_get_config_returns_copies(self):
        """Test edits to one default copy do not leak."""
        get_config().set("carbon.fit_scale", 1)

        assert get_config().get("carbon.fit_scale") == 250

    def test_load_merges_over_defaults(self, tmp_path):
        """Test a user file overrides single keys."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"carbon": {"sample_seed": 7}}))

        config = load_config(path)

        assert config.get("carbon.sample_seed") == 7
        assert config.get("carbon.fit_scale") == 250
        assert config.source == path

    def test_load_without_defaults(self, tmp_path):
        """Test merge_defaults=False keeps only the file content."""
        path = tmp_path / "config.yaml"
        path.write_text("only: {key: 1}\n")

        config = load_config(path, merge_defaults=False)

        assert config.get("only.key") == 1
        assert "carbon" not in config

    def test_load_errors(self, tmp_path):
        """Test missing files and non-mapping content."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_get_config_value_fallback(self):
        """Test lookups fall back to the defaults."""
        config = ConfigManager({"carbon": {"fit_scale": 10}})

        assert get_config_value("carbon.fit_scale", config) == 10
        assert get_config_value("carbon.class_scale", config) == 100
        assert get_config_value("nothing.here", default=3) == 3
