"""
Engine settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from diffchecker.core.models import ComparisonOptions, FormatType


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class EngineSettings:
    """Settings for the comparison engine and its background execution."""
    large_input_threshold: int = 300_000   # Characters; above this the progressive matcher runs
    chunk_size: int = 500                  # Line operations per progressive chunk
    use_worker_threads: bool = True
    log_level: str = "INFO"
    default_format: FormatType = FormatType.TEXT
    default_options: ComparisonOptions = field(default_factory=ComparisonOptions)

    def __post_init__(self) -> None:
        if self.large_input_threshold < 0:
            raise ValueError("large_input_threshold must not be negative")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
        self.log_level = self.log_level.upper()


class SettingsManager:
    """Manager for loading/saving engine settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = Path(settings_path) if settings_path else self._get_default_path()
        self._settings: Optional[EngineSettings] = None

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            # Windows
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'DiffChecker' / 'settings.json'
        else:
            # Linux/Mac
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'diffchecker' / 'settings.json'

    @property
    def settings(self) -> EngineSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> EngineSettings:
        """Load settings from disk; missing or unreadable files yield defaults."""
        if not self.settings_path.exists():
            return EngineSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings file must contain a JSON object")
            return self._from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logging.warning(f"SettingsManager - Could not load {self.settings_path}, using defaults: {e}")
            return EngineSettings()

    def save(self, settings: Optional[EngineSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            data = self._to_dict(settings)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)

            self._settings = settings
            return True

        except OSError as e:
            logging.error(f"SettingsManager - Could not save {self.settings_path}: {e}")
            return False

    def _to_dict(self, settings: EngineSettings) -> dict:
        """Convert settings to dictionary for JSON serialization."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.name
            elif isinstance(obj, ComparisonOptions):
                return obj.to_dict()
            elif hasattr(obj, '__dataclass_fields__'):
                return {f.name: convert(getattr(obj, f.name)) for f in fields(obj)}
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            else:
                return obj

        return convert(settings)

    def _from_dict(self, data: dict) -> EngineSettings:
        """Convert dictionary back to a settings object."""
        def get_enum(enum_class: type, value: Any, default: Enum) -> Enum:
            if isinstance(value, str):
                try:
                    return enum_class[value.upper()]
                except KeyError:
                    return default
            return default

        defaults = EngineSettings()
        return EngineSettings(
            large_input_threshold=int(data.get('large_input_threshold', defaults.large_input_threshold)),
            chunk_size=int(data.get('chunk_size', defaults.chunk_size)),
            use_worker_threads=bool(data.get('use_worker_threads', defaults.use_worker_threads)),
            log_level=str(data.get('log_level', defaults.log_level)),
            default_format=get_enum(FormatType, data.get('default_format'), defaults.default_format),
            default_options=ComparisonOptions.from_dict(data.get('default_options')),
        )
