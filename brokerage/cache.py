"""
Config cache module.

Keeps the product rule parameters (products.yaml) and the seed data
(seed.json) in memory so rule evaluation never touches the disk on a
keystroke-level request.
"""

import json
import os
from typing import Dict, Any, Optional
from threading import Lock

import yaml

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "config")


class ConfigCache:
    """Thread-safe configuration cache."""

    def __init__(self, config_dir: str = CONFIG_DIR):
        self._config_dir = config_dir
        self._seed_data: Optional[Dict[str, Any]] = None
        self._product_rules: Optional[Dict[str, Any]] = None
        self._lock = Lock()

    def get_seed_data(self) -> Dict[str, Any]:
        """Get cached seed data, loading from disk if not cached."""
        if self._seed_data is None:
            with self._lock:
                if self._seed_data is None:  # Double-check locking
                    seed_file = os.path.join(self._config_dir, "seed.json")
                    with open(seed_file, "r", encoding="utf-8") as f:
                        self._seed_data = json.load(f)
        return self._seed_data

    def get_product_rules(self) -> Dict[str, Any]:
        """Get the per-product rule parameters keyed by product code."""
        if self._product_rules is None:
            with self._lock:
                if self._product_rules is None:
                    rules_file = os.path.join(self._config_dir, "products.yaml")
                    with open(rules_file, "r", encoding="utf-8") as f:
                        config = yaml.safe_load(f) or {}
                    self._product_rules = config.get("products", {})
        return self._product_rules

    def get_seed_profiles(self) -> list:
        return self.get_seed_data().get("profiles", [])

    def get_seed_products(self) -> list:
        return self.get_seed_data().get("products", [])

    def clear_cache(self):
        """Clear all cached data (useful for testing)."""
        with self._lock:
            self._seed_data = None
            self._product_rules = None


# Global cache instance
config_cache = ConfigCache()
