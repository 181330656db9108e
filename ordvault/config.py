"""
Ordinals Vault Configuration System

Deployment parameters, security knobs, oracle endpoint and logging settings,
with YAML files, environment variables and validation.

Configuration Sources (in order of precedence):
    1. Environment variables (ORDVAULT_*)
    2. Runtime overrides (ConfigManager.set)
    3. Loaded config files (./ordvault.yaml, ~/.ordvault/config.yaml, --config)
    4. Default values

256-bit values (oracle key fingerprint, collection binding) are written as
0x-prefixed hex strings.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from ordvault.hardening import U256_MAX, ValidationError as InputValidationError, Validators
from ordvault.hashing import KeyDerivation
from ordvault.vault import VaultDeployment

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ValidationError(ConfigError):
    """Configuration validation error."""
    pass


def _extract_values(obj: Any) -> Any:
    if isinstance(obj, ConfigValue):
        return obj.get()
    elif hasattr(obj, "__dataclass_fields__"):
        return {k: _extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
    return obj


def _is_u256_hex(value: Any) -> bool:
    try:
        Validators.parse_u256(value, "value")
    except InputValidationError:
        return False
    return True


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[Optional[T], T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            value = self._coerce(os.environ[self.env_var])
            if not self._accepts(value):
                raise ValidationError(f"Invalid value for {self.env_var}: {value}")
            return value
        return self._value if self._value is not None else self.default

    def set(self, value: Any) -> None:
        """Set the value with validation."""
        if isinstance(value, str) and not isinstance(self.default, str):
            value = self._coerce(value)
        if not self._accepts(value):
            raise ValidationError(f"Invalid value for config: {value}")

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        self._value = None

    def _accepts(self, value: Any) -> bool:
        if self.validator is None:
            return True
        try:
            return bool(self.validator(value))
        except (TypeError, ValueError):
            return False

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        try:
            if target_type == int:
                return int(value, 0)  # type: ignore
            if target_type == float:
                return float(value)  # type: ignore
        except ValueError as e:
            raise ValidationError(f"Cannot convert {value!r} to {target_type.__name__}") from e
        return value  # type: ignore

    def on_change(self, callback: Callable[[Optional[T], T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class DeploymentConfig:
    """Parameters fixed once at vault deployment."""
    name: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="Ordinals Vault",
        env_var="ORDVAULT_NAME",
        description="Token collection name",
        validator=lambda x: isinstance(x, str) and len(x) > 0,
    ))
    symbol: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="OVLT",
        env_var="ORDVAULT_SYMBOL",
        description="Token collection symbol",
        validator=lambda x: isinstance(x, str) and len(x) > 0,
    ))
    base_uri: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="https://ordinals.com/content/",
        env_var="ORDVAULT_BASE_URI",
        description="Prefix joined to each token's inscription id",
        validator=lambda x: isinstance(x, str),
    ))
    max_supply: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=10000,
        env_var="ORDVAULT_MAX_SUPPLY",
        description="Maximum number of tokens the vault will ever mint",
        validator=lambda x: isinstance(x, int) and 0 <= x <= U256_MAX,
    ))
    burn_address: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="ORDVAULT_BURN_ADDRESS",
        description="Bitcoin burn address advertised to claimants",
        validator=lambda x: isinstance(x, str) and len(x) > 0,
    ))
    oracle_key_hash: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="0x0",
        env_var="ORDVAULT_ORACLE_KEY_HASH",
        description="SHA-256 fingerprint of the trusted oracle public key",
        validator=_is_u256_hex,
    ))
    collection_id_hash: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="0x0",
        env_var="ORDVAULT_COLLECTION_ID_HASH",
        description="Collection binding (0 = accept any collection)",
        validator=_is_u256_hex,
    ))


@dataclass
class SecurityConfig:
    """Configuration for claim keys and confirmation delay."""
    key_derivation: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=KeyDerivation.FNV1A64.value,
        env_var="ORDVAULT_KEY_DERIVATION",
        description="Storage-key hash (fnv1a64, sha256)",
        validator=lambda x: x in {k.value for k in KeyDerivation},
    ))
    confirmation_blocks: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=1,
        env_var="ORDVAULT_CONFIRMATION_BLOCKS",
        description="Blocks between recording a burn and minting",
        validator=lambda x: isinstance(x, int) and x >= 1,
    ))
    max_claim_id_bytes: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=4096,
        env_var="ORDVAULT_MAX_CLAIM_ID_BYTES",
        description="Maximum UTF-8 length of an inscription id",
        validator=lambda x: isinstance(x, int) and x >= 1,
    ))


@dataclass
class OracleConfig:
    """Configuration for the oracle client."""
    endpoint: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="http://localhost:8787",
        env_var="ORDVAULT_ORACLE_ENDPOINT",
        description="Oracle base URL",
        validator=lambda x: isinstance(x, str) and x.startswith(("http://", "https://")),
    ))
    timeout_seconds: ConfigValue[float] = field(default_factory=lambda: ConfigValue(
        default=10.0,
        env_var="ORDVAULT_ORACLE_TIMEOUT",
        description="HTTP timeout in seconds",
        validator=lambda x: isinstance(x, (int, float)) and x > 0,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="ORDVAULT_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="ORDVAULT_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class VaultConfig:
    """
    Root configuration for the vault.

    Aggregates all section configurations and provides
    loading/saving functionality.
    """
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return _extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    DEFAULT_PATHS = (
        Path("ordvault.yaml"),
        Path.home() / ".ordvault" / "config.yaml",
    )

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = VaultConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @property
    def config(self) -> VaultConfig:
        """Get the current configuration."""
        return self._config

    @property
    def loaded_paths(self) -> List[Path]:
        return list(self._config_paths)

    def reset(self) -> None:
        """Drop overrides and loaded files, back to defaults."""
        self._config = VaultConfig()
        self._config_paths = []

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")

        self._apply_dict(data)
        self._config_paths.append(path)

    def load_defaults(self) -> None:
        """Load the default configuration files that exist."""
        for path in self.DEFAULT_PATHS:
            if path.exists():
                self.load_from_file(path)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                path = f"{prefix}{key}"
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {path}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{path}.")
                else:
                    raise ConfigError(f"Invalid config section: {path}")

        apply_to_config(self._config, data, "")

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not part or not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("security.confirmation_blocks", 6)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("deployment.max_supply")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return _extract_values(obj)

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                except ValidationError as e:
                    errors.append(f"{path}: {e}")
                    return
                if not obj._accepts(value):
                    errors.append(f"{path}: validation failed for value {value}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> VaultConfig:
    """Get the current vault configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()


def deployment_from_config(config: Optional[VaultConfig] = None) -> VaultDeployment:
    """Build VaultDeployment from configuration, raising ConfigError if invalid."""

    config = config or get_config()
    dep = config.deployment
    sec = config.security
    try:
        deployment = VaultDeployment(
            name=dep.name.get(),
            symbol=dep.symbol.get(),
            base_uri=dep.base_uri.get(),
            max_supply=dep.max_supply.get(),
            burn_address=dep.burn_address.get(),
            oracle_key_hash=Validators.parse_u256(dep.oracle_key_hash.get(), "oracle_key_hash"),
            collection_id_hash=Validators.parse_u256(dep.collection_id_hash.get(), "collection_id_hash"),
            key_derivation=KeyDerivation(sec.key_derivation.get()),
            confirmation_blocks=sec.confirmation_blocks.get(),
            max_claim_id_bytes=sec.max_claim_id_bytes.get(),
        )
        deployment.validate()
    except (InputValidationError, ValueError) as e:
        raise ConfigError(f"Invalid deployment configuration: {e}") from e
    return deployment
