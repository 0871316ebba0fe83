"""
FlashLyrics Configuration Loader
Loads values from environment variables and settings.json via the settings manager.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

from settings import settings

# ==========================================
# Path Configuration
# ==========================================
ROOT_DIR = Path(__file__).parent

# ==========================================
# Version
# ==========================================
VERSION = "1.0.0"

# Only load .env if it exists
env_file = ROOT_DIR / '.env'
if env_file.exists():
    load_dotenv(env_file)


# Helper to prefer Env Var > Settings JSON > Default
def conf(key, default=None):
    # 1. Env var (providers.lyrics.ovh.enabled -> PROVIDERS_LYRICS_OVH_ENABLED)
    env_val = os.getenv(key.upper().replace('.', '_'))
    if env_val is not None:
        return settings.convert(key, env_val)

    # 2. Settings JSON (or schema default)
    json_val = settings.get(key)
    if json_val is not None:
        return json_val

    # 3. Default
    return default


# ==========================================
# EXPORTED CONFIG DICTS
# ==========================================

# Data directory can be overridden for persistent storage
DATABASE_DIR = Path(os.getenv("FLASHLYRICS_LYRICS_DB", str(ROOT_DIR / "lyrics_database")))

DEBUG = {
    "log_file": conf("debug.log_file", "flashlyrics.log"),
    "log_level": conf("debug.log_level", "INFO"),
    "file_log_level": conf("debug.file_log_level", "DEBUG"),
    "log_providers": conf("debug.log_providers", True),
    "log_to_console": conf("debug.log_to_console", True),
    "log_rotation": {
        "max_bytes": conf("debug.log_rotation.max_bytes", 1048576),
        "backup_count": conf("debug.log_rotation.backup_count", 5)
    }
}

LYRICS = {
    "provider_priority": conf("lyrics.provider_priority"),
    "non_latin_priority": conf("lyrics.non_latin_priority"),
    "connect_timeout": conf("lyrics.connect_timeout", 8.0),
    "receive_timeout": conf("lyrics.receive_timeout", 12.0),
    "provider_timeout": conf("lyrics.provider_timeout", 10.0),
    "race_timeout": conf("lyrics.race_timeout", 10.0),
    "max_retries": conf("lyrics.max_retries", 2),
    "retry_delay": conf("lyrics.retry_delay", 0.5),
    "cache_ttl_days": conf("lyrics.cache_ttl_days", 7),
    "search_limit": conf("lyrics.search_limit", 10),
}

PROVIDERS = {
    "lrclib": {
        "enabled": conf("providers.lrclib.enabled", True),
        "base_url": os.getenv("LRCLIB_BASE_URL", "https://lrclib.net/api"),
    },
    "textyl": {
        "enabled": conf("providers.textyl.enabled", True),
        "base_url": os.getenv("TEXTYL_BASE_URL", "https://api.textyl.co/api"),
    },
    "netease": {
        "enabled": conf("providers.netease.enabled", True),
        "base_url": os.getenv("NETEASE_BASE_URL", "https://music.163.com/api"),
    },
    "lyrics.ovh": {
        "enabled": conf("providers.lyrics.ovh.enabled", True),
        "base_url": os.getenv("LYRICS_OVH_BASE_URL", "https://api.lyrics.ovh/v1"),
    },
    "lyrist": {
        "enabled": conf("providers.lyrist.enabled", True),
        "base_url": os.getenv("LYRIST_BASE_URL", "https://lyrist.vercel.app/api"),
    },
    "chartlyrics": {
        "enabled": conf("providers.chartlyrics.enabled", True),
        "base_url": os.getenv("CHARTLYRICS_BASE_URL", "http://api.chartlyrics.com/apiv1.asmx"),
    },
}

FEATURES = {
    "save_lyrics_locally": conf("features.save_lyrics_locally", True),
    "parallel_provider_fetch": conf("features.parallel_provider_fetch", True),
    "single_flight": conf("features.single_flight", True),
    "normalize_queries": conf("features.normalize_queries", True),
}


# Helper functions
def get_provider_config(name: str) -> dict:
    return PROVIDERS.get(name, {"enabled": False})


def is_provider_enabled(name: str) -> bool:
    return PROVIDERS.get(name, {}).get("enabled", False)
