# config.py
import copy
import json
import logging
import os

logger = logging.getLogger("POS_Billing.Config")

# Default configuration
DEFAULT_CONFIG = {
    "api": {
        "base_url": "http://localhost:3000",
        "timeout": 55,
        "token": ""
    },
    "printer": {
        "bridge_url": "ws://localhost:8182",
        "name": "",
        "line_width": 32,
        "encoding": "cp437",
        "currency": "Rs.",
        "certificate": ""
    },
    "receipt": {
        "receipt_dir": "receipts",
        "archive": "none"
    },
    "search": {
        "debounce_ms": 300
    },
    "labels": {},
    "export": {
        "default_dir": "exports",
        "format": "csv"
    },
    "ui": {
        "theme": "default",
        "currency": "₹"
    },
    "logging": {
        "level": "INFO",
        "file": "logs/pos.log",
        "max_size": 1048576,
        "backup_count": 3
    }
}


def merge_config(base: dict, override: dict) -> dict:
    """Recursively overlay `override` on a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path="config.json"):
    """Load configuration from JSON file or create default if not exists"""
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
            logger.info(f"Configuration loaded from {config_path}")
            return merge_config(DEFAULT_CONFIG, config)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading config, using defaults: {e}")
            return copy.deepcopy(DEFAULT_CONFIG)

    # Create default config if not exists
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)
    logger.info(f"Created default configuration at {config_path}")

    return copy.deepcopy(DEFAULT_CONFIG)
