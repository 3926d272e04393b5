import os
from pathlib import Path
from unittest.mock import patch

from pydantic import SecretStr

from conduit.core.config.config import CoreSettings, load_ini_as_dict, load_ini_settings


class TestCoreSettings:
    """Test cases for the CoreSettings class."""

    def test_core_settings_model_config(self):
        assert CoreSettings.model_config["env_nested_delimiter"] == "__"

    def test_core_settings_fields(self):
        model_fields = CoreSettings.model_fields
        assert "CONDUIT_DIR_PATHS" in model_fields
        assert "CONDUIT_LOGGER" in model_fields
        assert "CONDUIT_MONGO" in model_fields

    def test_defaults_come_from_bundled_ini(self):
        settings = CoreSettings()
        assert settings.CONDUIT_MONGO.HOST == "localhost"
        assert settings.CONDUIT_MONGO.PORT == 27017
        assert settings.CONDUIT_MONGO.GRIDFS_BUCKET == "fs"
        assert settings.CONDUIT_LOGGER.USE_STRUCTLOG is False
        assert isinstance(settings.CONDUIT_MONGO.PASSWORD, SecretStr)

    def test_ini_directory_paths_are_expanded(self):
        settings = CoreSettings()
        root = settings.CONDUIT_DIR_PATHS.ROOT
        assert not root.startswith("~")
        assert settings.CONDUIT_DIR_PATHS.LOGGER_DIR == os.path.join(root, "logs")

    def test_env_overrides_single_nested_key(self):
        with patch.dict(os.environ, {"CONDUIT_MONGO__HOST": "db.internal", "CONDUIT_MONGO__PORT": "27018"}):
            settings = CoreSettings()
        assert settings.CONDUIT_MONGO.HOST == "db.internal"
        assert settings.CONDUIT_MONGO.PORT == 27018
        assert settings.CONDUIT_MONGO.DATABASE == "test"

    def test_env_values_with_tilde_are_expanded(self):
        with patch.dict(os.environ, {"CONDUIT_DIR_PATHS__LOGGER_DIR": "~/custom-logs"}):
            settings = CoreSettings()
        assert settings.CONDUIT_DIR_PATHS.LOGGER_DIR == os.path.expanduser("~/custom-logs")

    def test_init_kwargs_take_precedence(self):
        with patch.dict(os.environ, {"CONDUIT_MONGO__HOST": "from-env"}):
            settings = CoreSettings(CONDUIT_MONGO={"HOST": "from-init", "PORT": 1, "DATABASE": "db"})
        assert settings.CONDUIT_MONGO.HOST == "from-init"


class TestLoadIni:
    def test_missing_file_gives_empty_dict(self, tmp_path):
        assert load_ini_as_dict(tmp_path / "missing.ini") == {}

    def test_sections_and_keys_are_uppercased(self, tmp_path):
        ini_path = tmp_path / "config.ini"
        ini_path.write_text("[conduit_mongo]\nhost = example\n")
        assert load_ini_as_dict(ini_path) == {"CONDUIT_MONGO": {"HOST": "example"}}

    def test_interpolation_and_tilde_expansion(self, tmp_path):
        ini_path = tmp_path / "config.ini"
        ini_path.write_text("[paths]\nROOT = ~/.cache/app\nLOGS = ${ROOT}/logs\n")
        result = load_ini_as_dict(ini_path)
        assert result["PATHS"]["LOGS"] == str(Path("~/.cache/app/logs").expanduser())

    def test_bundled_ini_has_every_section(self):
        settings = load_ini_settings()
        assert {"CONDUIT_DIR_PATHS", "CONDUIT_LOGGER", "CONDUIT_MONGO"} <= set(settings)
