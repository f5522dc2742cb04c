"""Configuration management for provider adapters.

This module provides per-adapter configuration: connection settings,
pacing and retry parameters, and credential lookup.
"""

import os
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
import yaml
import json

from market_data_provider.utils.config import config as app_config
from market_data_provider.utils.exceptions import ConfigurationError
from market_data_provider.utils.logging import get_logger

logger = get_logger(__name__)

ALPHA_VANTAGE = 'alpha_vantage'
DEFAULT_ALPHA_VANTAGE_URL = "https://www.alphavantage.co"
MAX_RETRIES_LIMIT = 5


@dataclass
class AdapterConfig:
    """Configuration for a provider adapter."""

    name: str
    base_url: str = DEFAULT_ALPHA_VANTAGE_URL
    timeout: int = 30
    max_retries: int = 2
    rate_limit_interval: float = 1.1  # Seconds between requests
    retry_interval: float = 1.1
    retry_backoff_factor: float = 2.0
    retry_interval_randomness: float = 0.5
    credentials: Dict[str, str] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)

    def get_credential(self, key: str) -> Optional[str]:
        """Get credential value, checking environment variables first.

        Args:
            key: Credential key name

        Returns:
            Credential value or None if not found
        """
        env_key = f"{self.name.upper()}_{key.upper()}"
        env_value = os.getenv(env_key)
        if env_value:
            return env_value

        env_value = os.getenv(key.upper())
        if env_value:
            return env_value

        return self.credentials.get(key) or None

    def get_base_url(self) -> str:
        """Get the upstream base URL, honouring the ``<NAME>_URL`` override."""
        return os.getenv(f"{self.name.upper()}_URL") or self.base_url

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get adapter setting value.

        Args:
            key: Setting key name
            default: Default value if setting not found

        Returns:
            Setting value or default
        """
        return self.settings.get(key, default)

    def validate(self) -> List[str]:
        """Check the numeric settings.

        Returns:
            List of human-readable issues, empty when the config is usable
        """
        issues = []

        if self.timeout <= 0:
            issues.append("Timeout must be positive")

        if self.max_retries < 0 or self.max_retries > MAX_RETRIES_LIMIT:
            issues.append(f"Max retries must be between 0 and {MAX_RETRIES_LIMIT}")

        if self.rate_limit_interval < 0:
            issues.append("Rate limit interval cannot be negative")

        if self.retry_interval < 0:
            issues.append("Retry interval cannot be negative")

        if self.retry_backoff_factor < 1:
            issues.append("Retry backoff factor must be at least 1")

        if not 0 <= self.retry_interval_randomness <= 1:
            issues.append("Retry interval randomness must be between 0 and 1")

        return issues

    def ensure_valid(self) -> None:
        """Raise if ``validate`` reports any issue.

        Raises:
            ConfigurationError: If the configuration is unusable
        """
        issues = self.validate()
        if issues:
            raise ConfigurationError(
                f"Invalid configuration for adapter {self.name}: {'; '.join(issues)}",
                config_key=self.name
            )


class AdapterConfigManager:
    """Manager for adapter configurations."""

    def __init__(self, config_file: str = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to configuration file
        """
        self.config_file = config_file or app_config.get(
            'market_data_provider.adapters.config_file', 'adapters.yaml'
        )
        self.configs: Dict[str, AdapterConfig] = {}
        self._load_configs()

    def _load_configs(self) -> None:
        """Load adapter configurations from file, falling back to defaults."""
        self._load_default_configs()

        if not os.path.exists(self.config_file):
            logger.debug(f"Configuration file {self.config_file} not found, using defaults")
            return

        try:
            with open(self.config_file, 'r') as f:
                if self.config_file.endswith('.json'):
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Error loading adapter configurations: {str(e)}",
                config_file=self.config_file
            )

        self._parse_config_data(data or {})
        logger.info(f"Loaded adapter configurations from {self.config_file}")

    def _parse_config_data(self, data: Dict[str, Any]) -> None:
        """Parse configuration data and create AdapterConfig objects."""
        adapters_data = data.get('adapters', {}) or {}

        for adapter_name, adapter_data in adapters_data.items():
            adapter_data = adapter_data or {}
            adapter_config = AdapterConfig(
                name=adapter_name,
                base_url=adapter_data.get('base_url', DEFAULT_ALPHA_VANTAGE_URL),
                timeout=adapter_data.get('timeout', 30),
                max_retries=adapter_data.get('max_retries', 2),
                rate_limit_interval=adapter_data.get('rate_limit_interval', 1.1),
                retry_interval=adapter_data.get('retry_interval', 1.1),
                retry_backoff_factor=adapter_data.get('retry_backoff_factor', 2.0),
                retry_interval_randomness=adapter_data.get('retry_interval_randomness', 0.5),
                credentials=adapter_data.get('credentials', {}) or {},
                settings=adapter_data.get('settings', {}) or {}
            )
            adapter_config.ensure_valid()
            self.configs[adapter_name] = adapter_config

    def _load_default_configs(self) -> None:
        """Load default configurations for known adapters."""
        self.configs[ALPHA_VANTAGE] = AdapterConfig(
            name=ALPHA_VANTAGE,
            credentials={
                'api_key': ''  # Must be provided via environment or config
            }
        )

    def get_config(self, adapter_name: str) -> Optional[AdapterConfig]:
        """Get configuration for a specific adapter.

        Args:
            adapter_name: Name of the adapter

        Returns:
            AdapterConfig object or None if not found
        """
        return self.configs.get(adapter_name)


# Global configuration manager instance
_config_manager = None


def get_adapter_config_manager() -> AdapterConfigManager:
    """Get the global adapter configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = AdapterConfigManager()
    return _config_manager


def get_adapter_config(adapter_name: str) -> Optional[AdapterConfig]:
    """Get configuration for a specific adapter.

    Args:
        adapter_name: Name of the adapter

    Returns:
        AdapterConfig object or None if not found
    """
    return get_adapter_config_manager().get_config(adapter_name)
