"""Configuration loading from CLI and programmatic sources."""

import logging
from pathlib import Path
from dataclasses import replace
from zoneconf.config.settings import (
    Settings, ConfidenceSettings, DatabaseSettings,
    ProcessingSettings, LoggingSettings, LogLevel,
)
from zoneconf.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

class ConfigurationLoader:
    """Loads configuration from CLI args and system defaults."""

    def load_from_cli_args(self, args) -> Settings:
        """Load configuration from CLI arguments."""
        try:
            settings = self.load_defaults()

            database_updates = {}
            if getattr(args, 'db', None):
                database_updates['path'] = Path(args.db)
            if getattr(args, 'no_wal', False):
                database_updates['use_wal'] = False

            processing_updates = {}
            if getattr(args, 'chunk_size', None):
                processing_updates['chunk_size'] = args.chunk_size
            if getattr(args, 'retry_attempts', None):
                processing_updates['retry_attempts'] = args.retry_attempts
            if getattr(args, 'no_progress', False):
                processing_updates['show_progress'] = False

            logging_updates = {}
            if getattr(args, 'log_dir', None):
                logging_updates['log_dir'] = Path(args.log_dir)
            if getattr(args, 'debug', False):
                logging_updates['level'] = LogLevel.DEBUG
            if getattr(args, 'quiet', False):
                logging_updates['console_output'] = False

            return replace(
                settings,
                database=replace(settings.database, **database_updates),
                processing=replace(settings.processing, **processing_updates),
                logging=replace(settings.logging, **logging_updates),
                debug_mode=bool(getattr(args, 'debug', False)),
                dry_run=bool(getattr(args, 'dry_run', False)),
            )

        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load configuration from CLI arguments: {str(e)}"
            ) from e

    def load_defaults(self) -> Settings:
        """Load default configuration settings."""
        return Settings(
            confidence=ConfidenceSettings(),
            database=DatabaseSettings(
                path=None,
                use_wal=True,
                busy_timeout_ms=120000,
            ),
            processing=ProcessingSettings(
                chunk_size=500,
                retry_attempts=3,
                show_progress=True,
            ),
            logging=LoggingSettings(
                level=LogLevel.INFO,
                log_dir=None,
                console_output=True,
            ),
            debug_mode=False,
            dry_run=False,
        )

def configure_from_cli(args) -> Settings:
    """Main entry point to configure settings from CLI args."""
    loader = ConfigurationLoader()
    settings = loader.load_from_cli_args(args)
    settings.validate()
    return settings
