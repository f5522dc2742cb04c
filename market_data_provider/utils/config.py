"""Configuration management for the market data provider."""

import os
import yaml
from typing import Dict, Any, Optional, List
from market_data_provider.utils.exceptions import ConfigurationError


class ConfigManager:
    """Manages application configuration from YAML files and environment variables."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. Defaults to 'config.yaml'
        """
        self.config_path = config_path or os.getenv('MARKET_DATA_PROVIDER_CONFIG', 'config.yaml')
        self._config = {}
        self._schema = {}
        self._load_schema()
        self.load_config()

    def load_config(self) -> None:
        """Load configuration from file and environment variables."""
        self._config = self._get_default_config()

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as file:
                    file_config = yaml.safe_load(file) or {}
                    self._merge_config(self._config, file_config)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Failed to load configuration from {self.config_path}: {str(e)}",
                    config_file=self.config_path
                )

        self._load_env_overrides()
        self._validate_config()

    def _load_schema(self) -> None:
        """Load configuration schema for validation."""
        self._schema = {
            'market_data_provider': {
                'logging': {
                    'level': {'type': 'str', 'allowed': ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']},
                    'file_path': {'type': 'str', 'nullable': True},
                    'max_file_size': {'type': 'str'},
                    'backup_count': {'type': 'int', 'min': 0, 'max': 100},
                    'structured': {'type': 'bool'}
                },
                'adapters': {
                    'config_file': {'type': 'str'}
                }
            }
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key.

        Args:
            key: Configuration key in dot notation (e.g., 'market_data_provider.logging.level')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-notation key.

        Args:
            key: Configuration key in dot notation
            value: Value to set
        """
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values."""
        return {
            'market_data_provider': {
                'logging': {
                    'level': 'INFO',
                    'file_path': None,
                    'max_file_size': '10MB',
                    'backup_count': 5,
                    'structured': False
                },
                'adapters': {
                    'config_file': 'adapters.yaml'
                }
            }
        }

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> None:
        """Recursively merge configuration dictionaries."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def _load_env_overrides(self) -> None:
        """Load configuration overrides from environment variables."""
        env_mappings = {
            'MARKET_DATA_PROVIDER_LOG_LEVEL': 'market_data_provider.logging.level',
            'MARKET_DATA_PROVIDER_LOG_FILE': 'market_data_provider.logging.file_path',
            'MARKET_DATA_PROVIDER_ADAPTERS_FILE': 'market_data_provider.adapters.config_file'
        }

        for env_var, config_key in env_mappings.items():
            if env_var in os.environ:
                value = os.environ[env_var]
                # Try to convert to appropriate type
                if value.lower() in ('true', 'false'):
                    value = value.lower() == 'true'
                elif value.isdigit():
                    value = int(value)

                self.set(config_key, value)

    def _validate_config(self) -> None:
        """Validate configuration against schema."""
        errors = []
        self._validate_against_schema(self._config, self._schema, '', errors)

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(errors)
            raise ConfigurationError(error_msg)

    def _validate_against_schema(self, config: Dict[str, Any], schema: Dict[str, Any],
                                 path: str, errors: List[str]) -> None:
        """Recursively validate configuration against schema."""
        for key, schema_value in schema.items():
            full_path = f"{path}.{key}" if path else key
            is_leaf = any(k in schema_value for k in ['type', 'allowed', 'min', 'max'])

            if key not in config:
                continue

            value = config[key]

            if not is_leaf:
                if not isinstance(value, dict):
                    errors.append(f"{full_path} should be an object")
                else:
                    self._validate_against_schema(value, schema_value, full_path, errors)
                continue

            if value is None and schema_value.get('nullable', False):
                continue

            if 'type' in schema_value:
                if schema_value['type'] == 'str' and not isinstance(value, str):
                    errors.append(f"{full_path} should be a string")
                elif schema_value['type'] == 'int' and not isinstance(value, int):
                    errors.append(f"{full_path} should be an integer")
                elif schema_value['type'] == 'bool' and not isinstance(value, bool):
                    errors.append(f"{full_path} should be a boolean")

            if 'allowed' in schema_value and value not in schema_value['allowed']:
                errors.append(f"{full_path} should be one of {schema_value['allowed']}")

            if isinstance(value, (int, float)) and not isinstance(value, bool):
                if 'min' in schema_value and value < schema_value['min']:
                    errors.append(f"{full_path} should be at least {schema_value['min']}")
                if 'max' in schema_value and value > schema_value['max']:
                    errors.append(f"{full_path} should be at most {schema_value['max']}")


# Global configuration instance
config = ConfigManager()
