"""
FlashLyrics Settings Manager
Handles persisted configuration using settings.json
"""

import ast
import json
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from logging_config import get_logger

logger = get_logger(__name__)

ROOT_DIR = Path(__file__).parent

# Allow overriding the settings file location via environment variable
SETTINGS_FILE = Path(os.getenv("FLASHLYRICS_SETTINGS_FILE", str(ROOT_DIR / "settings.json")))

DEFAULT_PROVIDER_PRIORITY = ["lrclib", "textyl", "chartlyrics", "lyrics.ovh", "lyrist", "netease"]
DEFAULT_NON_LATIN_PRIORITY = ["netease", "lrclib", "textyl", "lyrics.ovh", "lyrist", "chartlyrics"]


@dataclass
class Setting:
    """Represents a single configurable setting"""
    name: str
    type: type
    default: Any
    category: Optional[str] = None
    description: Optional[str] = None
    min_val: Optional[float] = None
    max_val: Optional[float] = None

    def validate_and_convert(self, value: Any) -> Any:
        try:
            if self.type == bool and isinstance(value, str):
                return value.lower() in ('true', '1', 'yes', 'on')

            if self.type == list:
                if isinstance(value, list):
                    return value
                if isinstance(value, str):
                    value = value.strip()
                    try:
                        parsed = ast.literal_eval(value)
                        if isinstance(parsed, list):
                            return parsed
                    except (ValueError, SyntaxError):
                        pass
                    try:
                        parsed = json.loads(value)
                        if isinstance(parsed, list):
                            return parsed
                    except json.JSONDecodeError:
                        pass
                    # Comma separated fallback: lrclib,netease
                    clean_value = value.strip("[]")
                    if clean_value:
                        return [v.strip().strip("'").strip('"') for v in clean_value.split(',') if v.strip()]
                    return []
                return self.default

            converted = self.type(value)
            if self.min_val is not None and converted < self.min_val:
                return self.default
            if self.max_val is not None and converted > self.max_val:
                return self.default
            return converted
        except (ValueError, TypeError):
            return self.default


class SettingsManager:
    def __init__(self, settings_file: Optional[Path] = None):
        self.settings_file = Path(settings_file) if settings_file else SETTINGS_FILE
        self._settings: Dict[str, Any] = {}

        self._definitions = {
            # Debug
            "debug.log_file": Setting("Log File", str, "flashlyrics.log", "Debug", "Log file name"),
            "debug.log_level": Setting("Log Level", str, "INFO", "Debug", "Console logging verbosity"),
            "debug.file_log_level": Setting("File Log Level", str, "DEBUG", "Debug", "File logging verbosity"),
            "debug.log_providers": Setting("Log Providers", bool, True, "Debug", "Log provider requests"),
            "debug.log_to_console": Setting("Log to Console", bool, True, "Debug", "Print logs to terminal"),
            "debug.log_rotation.max_bytes": Setting("Max Log Size", int, 1048576, "Debug", "Max log file size (bytes)", min_val=1024),
            "debug.log_rotation.backup_count": Setting("Log Backups", int, 5, "Debug", "Number of backups to keep", min_val=0),

            # Lyrics pipeline
            "lyrics.provider_priority": Setting("Provider Priority", list, DEFAULT_PROVIDER_PRIORITY, "Lyrics", "Sequential fallback order"),
            "lyrics.non_latin_priority": Setting("Non-Latin Priority", list, DEFAULT_NON_LATIN_PRIORITY, "Lyrics", "Fallback order for non-Latin queries"),
            "lyrics.connect_timeout": Setting("Connect Timeout", float, 8.0, "Lyrics", "HTTP connect timeout (s)", min_val=0.5, max_val=60.0),
            "lyrics.receive_timeout": Setting("Receive Timeout", float, 12.0, "Lyrics", "HTTP read timeout (s)", min_val=0.5, max_val=120.0),
            "lyrics.provider_timeout": Setting("Provider Timeout", float, 10.0, "Lyrics", "Upper bound for one provider call (s)", min_val=0.1, max_val=120.0),
            "lyrics.race_timeout": Setting("Race Timeout", float, 10.0, "Lyrics", "Deadline for the synced provider race (s)", min_val=0.1, max_val=120.0),
            "lyrics.max_retries": Setting("Max Retries", int, 2, "Lyrics", "Retries for transient failures", min_val=0, max_val=10),
            "lyrics.retry_delay": Setting("Retry Delay", float, 0.5, "Lyrics", "Delay between retries (s)", min_val=0.0, max_val=30.0),
            "lyrics.cache_ttl_days": Setting("Cache TTL", int, 7, "Lyrics", "Days before a cached entry is stale", min_val=0),
            "lyrics.search_limit": Setting("Search Limit", int, 10, "Lyrics", "Max results per search provider", min_val=1, max_val=50),

            # Providers
            "providers.lrclib.enabled": Setting("LRCLIB", bool, True, "Providers", "Enable LRCLIB"),
            "providers.textyl.enabled": Setting("Textyl", bool, True, "Providers", "Enable Textyl"),
            "providers.netease.enabled": Setting("NetEase", bool, True, "Providers", "Enable NetEase Music"),
            "providers.lyrics.ovh.enabled": Setting("lyrics.ovh", bool, True, "Providers", "Enable lyrics.ovh"),
            "providers.lyrist.enabled": Setting("Lyrist", bool, True, "Providers", "Enable Lyrist"),
            "providers.chartlyrics.enabled": Setting("ChartLyrics", bool, True, "Providers", "Enable ChartLyrics"),

            # Features
            "features.save_lyrics_locally": Setting("Save Lyrics", bool, True, "Features", "Persist resolved lyrics"),
            "features.parallel_provider_fetch": Setting("Parallel Fetch", bool, True, "Features", "Race synced providers"),
            "features.single_flight": Setting("Single Flight", bool, True, "Features", "Share in-flight lookups for the same song"),
            "features.normalize_queries": Setting("Normalize Queries", bool, True, "Features", "Retry with cleaned titles"),
        }

        self.load_settings()

    def load_settings(self) -> None:
        """Load settings from JSON, fall back to defaults"""
        self._settings = {key: definition.default for key, definition in self._definitions.items()}

        if not self.settings_file.exists():
            logger.debug(f"No settings file at {self.settings_file}, using defaults")
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                saved = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load {self.settings_file.name}: {e} - using defaults")
            backup_path = self.settings_file.with_suffix('.json.corrupted')
            try:
                shutil.copy2(self.settings_file, backup_path)
                logger.info(f"Backed up corrupted settings to {backup_path}")
            except OSError as backup_error:
                logger.warning(f"Could not back up corrupted settings: {backup_error}")
            return

        if not isinstance(saved, dict):
            logger.error(f"{self.settings_file.name} is not a JSON object - using defaults")
            return

        for key, val in saved.items():
            # Unknown keys are kept as-is so newer files still load
            if key in self._definitions:
                self._settings[key] = self._definitions[key].validate_and_convert(val)
            else:
                self._settings[key] = val

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.
        Priority:
        1. Loaded value (from JSON or schema default)
        2. Provided 'default' argument (if key unknown)
        """
        if key in self._settings:
            return self._settings[key]
        return default

    def convert(self, key: str, value: Any) -> Any:
        """Coerce a raw value (e.g. from an environment variable) to the setting's type."""
        definition = self._definitions.get(key)
        if definition is None:
            return value
        return definition.validate_and_convert(value)

    def set(self, key: str, value: Any) -> bool:
        if key not in self._definitions:
            return False
        self._settings[key] = self._definitions[key].validate_and_convert(value)
        return True

    def save_to_config(self) -> None:
        """Save current settings to the JSON file atomically"""
        temp_path = self.settings_file.parent / f"settings_{uuid.uuid4().hex}.json.tmp"
        try:
            self.settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=4, sort_keys=True)
            os.replace(temp_path, self.settings_file)
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")
            if temp_path.exists():
                temp_path.unlink()
            raise

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        """Return settings grouped by category"""
        result: Dict[str, Dict[str, Any]] = {}
        for key, val in self._settings.items():
            defin = self._definitions.get(key)
            if not defin:
                continue
            cat = defin.category or "Misc"
            result.setdefault(cat, {})[key] = {
                "value": val,
                "name": defin.name,
                "description": defin.description,
                "type": defin.type.__name__,
            }
        return result

    def reset_to_defaults(self) -> None:
        if self.settings_file.exists():
            os.remove(self.settings_file)
        self.load_settings()


settings = SettingsManager()
