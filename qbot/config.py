"""
Configuration management for the QBot inspection dashboard.
"""

import os
import yaml
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_PATH = PROJECT_ROOT / "config.yaml"
DATA_PATH = PROJECT_ROOT / "data"


def load_config() -> dict:
    """Load configuration from YAML file, layered over the defaults."""
    defaults = get_default_config()
    if CONFIG_PATH.exists():
        with open(CONFIG_PATH, 'r') as f:
            overrides = yaml.safe_load(f) or {}
        return merge_config(defaults, overrides)
    return defaults


def merge_config(base: dict, overrides: dict) -> dict:
    """Recursively merge `overrides` into a copy of `base`."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> dict:
    """Return default configuration."""
    return {
        "app": {
            "title": "QBot AI",
            "subtitle": "Quality Inspection System",
            "version": "1.0.0",
            "last_update": "2024-01-15",
        },
        "backend": {
            "provider": os.getenv("QBOT_BACKEND", "local"),  # "local" or "http"
            "base_url": os.getenv("QBOT_BACKEND_URL", ""),
            "app_id": os.getenv("QBOT_APP_ID", ""),
            "timeout": 15.0,
            "data_path": str(DATA_PATH),
        },
        "llm": {
            "model": os.getenv("QBOT_LLM_MODEL", "gpt-4o"),
            "temperature": 0.2,
            "max_tokens": 1500,
        },
        "upload": {
            "allowed_types": [
                "image/png",
                "image/jpeg",
                "image/jpg",
                "image/webp",
                "image/gif",
            ],
            "max_size_mb": 20,
        },
        "dashboard": {
            "recent_limit": 100,
            "analysis_limit": 200,
            "history_limit": 500,
            "chart_points": 24,
            "trend_points": 20,
            "alert_count": 10,
            "recent_window": 10,
        },
        "thresholds": {
            "quality_good": 90,
            "quality_warn": 80,
            "defect_rate": 10.0,
            "critical_rate": 1.0,
            "default_uptime": 95,
        },
        "logging": {
            "level": os.getenv("QBOT_LOG_LEVEL", "INFO"),
        },
    }


# Load config on import
config = load_config()
