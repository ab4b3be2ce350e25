import pytest
from argparse import Namespace
from pathlib import Path

from zoneconf.config.loader import ConfigurationLoader, configure_from_cli
from zoneconf.config.settings import LogLevel
from zoneconf.domain.exceptions import ConfigurationError


class TestConfigurationLoader:

    def test_load_defaults(self):
        """Test that load_defaults returns correct default settings."""
        settings = ConfigurationLoader().load_defaults()

        assert settings.processing.chunk_size == 500
        assert settings.processing.retry_attempts == 3
        assert settings.processing.show_progress is True
        assert settings.database.path is None
        assert settings.database.use_wal is True
        assert settings.logging.level == LogLevel.INFO
        assert settings.logging.console_output is True
        assert settings.debug_mode is False
        assert settings.dry_run is False

    def test_load_from_cli_args_empty_args(self):
        settings = ConfigurationLoader().load_from_cli_args(Namespace())
        assert settings.processing.chunk_size == 500
        assert settings.database.path is None

    def test_load_from_cli_args_overrides(self, tmp_path):
        args = Namespace(
            db=str(tmp_path / "zones.sqlite"),
            no_wal=True,
            chunk_size=50,
            retry_attempts=5,
            no_progress=True,
            log_dir=str(tmp_path / "logs"),
            debug=True,
            quiet=True,
            dry_run=True,
        )
        settings = ConfigurationLoader().load_from_cli_args(args)

        assert settings.database.path == tmp_path / "zones.sqlite"
        assert settings.database.use_wal is False
        assert settings.processing.chunk_size == 50
        assert settings.processing.retry_attempts == 5
        assert settings.processing.show_progress is False
        assert settings.logging.log_dir == Path(tmp_path / "logs")
        assert settings.logging.level == LogLevel.DEBUG
        assert settings.logging.console_output is False
        assert settings.debug_mode is True
        assert settings.dry_run is True

    def test_engine_constants_not_touched_by_cli(self):
        settings = ConfigurationLoader().load_from_cli_args(Namespace(debug=True))
        assert settings.confidence.hazard.threshold_reports == 2


class TestConfigureFromCli:

    def test_valid_args(self, tmp_path):
        settings = configure_from_cli(Namespace(db=str(tmp_path / "zones.sqlite")))
        assert settings.database.path == tmp_path / "zones.sqlite"

    def test_invalid_args_raise(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            configure_from_cli(Namespace(chunk_size=-1))
        assert exc_info.value.config_field == "processing.chunk_size"

    def test_missing_db_directory(self, tmp_path):
        with pytest.raises(ConfigurationError):
            configure_from_cli(Namespace(db=str(tmp_path / "nope" / "zones.sqlite")))
