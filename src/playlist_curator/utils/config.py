"""Configuration loading and validation for playlist-curator."""

import os
import logging
from typing import Dict, List, Optional
from pathlib import Path
from dotenv import load_dotenv
from rich.logging import RichHandler

from playlist_curator.models.media import (
    DEFAULT_CATEGORY,
    RESERVED_CATEGORIES,
    is_valid_category_name,
)

# Project root is the parent of src
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

load_dotenv(PROJECT_ROOT / '.env')


def _split_names(value: Optional[str], default: tuple) -> List[str]:
    if not value:
        return list(default)
    return [name.strip() for name in value.split(',') if name.strip()]


def load_config() -> Dict:
    """Load configuration from environment variables."""
    config = {
        # Classifier capability
        'gemini_api_key': os.getenv('GEMINI_API_KEY'),
        'gemini_model': os.getenv('GEMINI_MODEL', 'gemini-2.0-flash-001'),

        # Batch dispatch
        'batch_size': int(os.getenv('CURATOR_BATCH_SIZE', '10')),
        'batch_timeout_ms': int(os.getenv('CURATOR_BATCH_TIMEOUT_MS', '60000')),
        'normalize_timeout_ms': int(os.getenv('CURATOR_NORMALIZE_TIMEOUT_MS', '15000')),
        'classify_timeout_ms': int(os.getenv('CURATOR_CLASSIFY_TIMEOUT_MS', '15000')),

        # Waiting for a classifier model that is still downloading
        'availability_wait_seconds': float(os.getenv('CURATOR_AVAILABILITY_WAIT_SECONDS', '60')),
        'availability_poll_seconds': float(os.getenv('CURATOR_AVAILABILITY_POLL_SECONDS', '5')),

        # Sampling options
        'curation_temperature': float(os.getenv('CURATOR_CURATION_TEMPERATURE', '0.4')),
        'curation_top_k': int(os.getenv('CURATOR_CURATION_TOP_K', '1')),
        'classify_temperature': float(os.getenv('CURATOR_CLASSIFY_TEMPERATURE', '0.3')),
        'classify_top_k': int(os.getenv('CURATOR_CLASSIFY_TOP_K', '3')),

        # Categories
        'default_category': os.getenv('CURATOR_DEFAULT_CATEGORY', DEFAULT_CATEGORY),
        'reserved_categories': _split_names(
            os.getenv('CURATOR_RESERVED_CATEGORIES'), RESERVED_CATEGORIES
        ),

        # Logging
        'log_level': os.getenv('LOG_LEVEL', 'INFO'),
        'log_file': os.getenv('LOG_FILE'),
    }

    return config


def validate_config(config: Dict) -> List[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if config.get('batch_size', 10) < 1:
        errors.append("CURATOR_BATCH_SIZE must be at least 1")

    for key, env_name in (
        ('batch_timeout_ms', 'CURATOR_BATCH_TIMEOUT_MS'),
        ('normalize_timeout_ms', 'CURATOR_NORMALIZE_TIMEOUT_MS'),
        ('classify_timeout_ms', 'CURATOR_CLASSIFY_TIMEOUT_MS'),
    ):
        if config.get(key, 1) <= 0:
            errors.append(f"{env_name} must be positive")

    if config.get('availability_wait_seconds', 0) < 0:
        errors.append("CURATOR_AVAILABILITY_WAIT_SECONDS cannot be negative")
    if config.get('availability_poll_seconds', 1) <= 0:
        errors.append("CURATOR_AVAILABILITY_POLL_SECONDS must be positive")

    for key, env_name in (
        ('curation_temperature', 'CURATOR_CURATION_TEMPERATURE'),
        ('classify_temperature', 'CURATOR_CLASSIFY_TEMPERATURE'),
    ):
        temperature = config.get(key, 0.0)
        if not 0.0 <= temperature <= 2.0:
            errors.append(f"{env_name} must be between 0 and 2")

    for key, env_name in (
        ('curation_top_k', 'CURATOR_CURATION_TOP_K'),
        ('classify_top_k', 'CURATOR_CLASSIFY_TOP_K'),
    ):
        if config.get(key, 1) < 1:
            errors.append(f"{env_name} must be at least 1")

    default_category = config.get('default_category', DEFAULT_CATEGORY)
    if not is_valid_category_name(default_category):
        errors.append(f"CURATOR_DEFAULT_CATEGORY is not a valid category name: {default_category!r}")
    elif default_category.lower() in [name.lower() for name in config.get('reserved_categories', [])]:
        errors.append("CURATOR_DEFAULT_CATEGORY cannot be a reserved category")

    # A missing GEMINI_API_KEY is not an error: the engine runs on the fallback scorer

    return errors


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Set up logging with Rich console output and an optional plain-text file."""
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    handlers: List[logging.Handler] = [rich_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        format="%(message)s"
    )

    noisy_loggers = [
        'httpx',
        'httpcore',
        'google_genai',
        'google_genai.models',
        'yt_dlp',
        'urllib3.connectionpool',
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
