"""
Utility functions for the Classroom Eco-Score engine

Configuration loading, division display names and calendar-month helpers
shared by the calculators, services and API.
"""

import calendar
import copy
import logging
import os
from datetime import date, datetime, tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from zoneinfo import ZoneInfo

import yaml

logger = logging.getLogger(__name__)


# Database value -> display name. Database values never change.
DIVISION_DISPLAY_MAP = {
    'Pre-School': 'Pre-School',
    'Elementary': 'Elementary',
    'Middle School': 'Intermediate',
    'High School': 'Secondary',
    'Technical Institute': 'Technical Institute',
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    'leaderboard': {
        'top_n': 3,
        'recent_days': 7,
        # Lower bound -> label, checked highest first
        'score_bands': [
            {'min': 90, 'label': 'Excellent'},
            {'min': 75, 'label': 'Good'},
            {'min': 60, 'label': 'Fair'},
        ],
        'default_band': 'Needs Improvement',
    },
    'divisions': {
        'display_names': DIVISION_DISPLAY_MAP,
    },
    'archive': {
        'timezone': 'UTC',
    },
}


def get_project_root() -> Path:
    """
    Get the project root directory

    Returns:
        Path to project root
    """
    # Assumes this file is in ecoscore/utilities/
    return Path(__file__).parent.parent.parent


def load_yaml_config(config_path: Union[str, Path]) -> dict:
    """
    Load a YAML configuration file

    Args:
        config_path: Path to YAML file

    Returns:
        Dictionary from YAML file

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If file is not valid YAML
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        try:
            config = yaml.safe_load(f)
            return config if config else {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML: {e}")


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@lru_cache(maxsize=1)
def get_settings() -> Dict[str, Any]:
    """
    Engine settings: built-in defaults overlaid with the YAML config file.

    The file is ECOSCORE_CONFIG if set, else config/ecoscore.yaml under the
    project root. A missing file leaves the defaults in place.
    """
    config_path = os.getenv('ECOSCORE_CONFIG') or get_project_root() / 'config' / 'ecoscore.yaml'
    try:
        overrides = load_yaml_config(config_path)
    except FileNotFoundError:
        logger.debug(f"No config file at {config_path}, using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)
    return _merge(DEFAULT_SETTINGS, overrides)


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[Path] = None
) -> logging.Logger:
    """
    Set up logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file to write logs to

    Returns:
        Configured logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_division_display_name(division: Optional[str]) -> str:
    """
    Display name for a division database value

    Examples:
        >>> get_division_display_name('Middle School')
        'Intermediate'
        >>> get_division_display_name('Elementary')
        'Elementary'
    """
    if not division:
        return ''
    names = get_settings()['divisions']['display_names']
    return names.get(division, division)


def get_archive_timezone() -> tzinfo:
    """Timezone whose calendar months drive the archival rollover."""
    return ZoneInfo(get_settings()['archive']['timezone'])


def current_time(tz: Optional[tzinfo] = None) -> datetime:
    """Timezone-aware now in the archive timezone (or tz)."""
    return datetime.now(tz or get_archive_timezone())


def month_key(year: int, month: int) -> str:
    """
    Zero-padded month label

    Examples:
        >>> month_key(2024, 3)
        '2024-03'
    """
    return f"{year:04d}-{month:02d}"


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """
    First and last day of a calendar month (inclusive)

    Examples:
        >>> month_bounds(2024, 2)
        (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))
    """
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def year_month(value: Union[date, datetime]) -> Tuple[int, int]:
    """(year, month) of a date or datetime."""
    return value.year, value.month
