"""
Key/value configuration access for the Vault Access Layer.

Configuration is read through a source exposing ``get(key)`` with
colon-separated hierarchical keys (``KeyVault:Uri``). ``Configuration``
adds the typed accessors services use and logs every provider failure
before re-raising it.
"""

import base64
import binascii
import os
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from shared.config import BaseConfig, Environment
from shared.errors import InvalidArgumentError, InvalidFormatError
from shared.logging import get_logger


KEY_DELIMITER = ":"
ENVIRON_DELIMITER = "__"
INTEGER_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)


class ReloadToken:
    """Change notification handed out by a configuration source."""

    def __init__(self):
        self.has_changed = False
        self._callbacks: List[Callable[[], None]] = []

    def register_change_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def _fire(self) -> None:
        self.has_changed = True
        for callback in self._callbacks:
            callback()


class ConfigurationSection:
    """A view over the keys of a source below ``path``."""

    def __init__(self, source: "MappingConfigurationSource", path: str):
        self._source = source
        self.path = path
        self.key = path.rsplit(KEY_DELIMITER, 1)[-1]

    @property
    def value(self) -> Optional[str]:
        return self._source.get(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._source.get(_combine(self.path, key))

    def __getitem__(self, key: str) -> Optional[str]:
        return self.get(key)

    def get_section(self, key: str) -> "ConfigurationSection":
        return ConfigurationSection(self._source, _combine(self.path, key))

    def get_children(self) -> List["ConfigurationSection"]:
        return self._source.get_children(self.path)

    def exists(self) -> bool:
        return self.value is not None or bool(self.get_children())

    def __repr__(self) -> str:
        return f"ConfigurationSection(path={self.path!r})"


class MappingConfigurationSource:
    """
    In-memory configuration source.

    Nested mappings are flattened into colon-separated keys and lookups are
    case-insensitive.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Tuple[str, Optional[str]]] = {}
        self._reload_token = ReloadToken()
        self._load(data or {})

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ""
    ) -> "MappingConfigurationSource":
        """Build a source from environment variables, mapping ``__`` to ``:``."""
        environ = os.environ if environ is None else environ
        data = {}
        for name, value in environ.items():
            if prefix and not name.upper().startswith(prefix.upper()):
                continue
            key = name[len(prefix):].replace(ENVIRON_DELIMITER, KEY_DELIMITER)
            if key:
                data[key] = value
        return cls(data)

    @classmethod
    def from_settings(cls, config: BaseConfig) -> "MappingConfigurationSource":
        """Expose pydantic settings under the keys the services read."""
        return cls({
            "Environment": config.environment.value,
            "LogLevel": config.log_level,
            "ServiceUrl": config.service_url,
            "ServiceAddress": config.service_address,
            "HttpTimeoutSeconds": config.http_timeout_seconds,
            "KeyVaultClientApiVersion": config.key_vault_api_version,
            "KeyVault": {
                "Uri": config.key_vault_url,
                "Certificates": {"Thumbprint": config.certificate_thumbprint},
                "Retry": {
                    "Total": config.secret_retry_total,
                    "BackoffFactor": config.secret_retry_backoff_factor,
                    "BackoffMax": config.secret_retry_backoff_max,
                },
            },
        })

    def _load(self, data: Mapping[str, Any]) -> None:
        values: Dict[str, Tuple[str, Optional[str]]] = {}
        for key, value in _flatten(data):
            values[key.lower()] = (key, value)
        self._values = values

    def get(self, key: str) -> Optional[str]:
        entry = self._values.get(key.lower())
        return entry[1] if entry else None

    def get_section(self, key: str) -> ConfigurationSection:
        return ConfigurationSection(self, key)

    def get_children(self, path: Optional[str] = None) -> List[ConfigurationSection]:
        """Return the immediate child sections below ``path`` (root when omitted)."""
        prefix = f"{path.lower()}{KEY_DELIMITER}" if path else ""
        children: Dict[str, str] = {}
        for lowered, (original, _) in self._values.items():
            if not lowered.startswith(prefix):
                continue
            segment = original[len(prefix):].split(KEY_DELIMITER, 1)[0]
            children.setdefault(segment.lower(), segment)

        return [
            ConfigurationSection(self, _combine(path, segment) if path else segment)
            for segment in sorted(children.values(), key=str.lower)
        ]

    def get_reload_token(self) -> ReloadToken:
        return self._reload_token

    def reload(self, data: Mapping[str, Any]) -> None:
        """Replace all values and signal the outstanding reload token."""
        self._load(data)
        previous, self._reload_token = self._reload_token, ReloadToken()
        previous._fire()


class Configuration:
    """Typed accessors over a configuration source."""

    def __init__(
        self,
        source: Optional[MappingConfigurationSource],
        environment: Optional[Environment] = None,
        required_keys: Iterable[str] = (),
    ):
        self.logger = get_logger("vault.configuration")

        try:
            if source is None:
                raise InvalidArgumentError("source")
            self._source = source
            self.environment = environment or Environment.from_value(
                source.get("Environment") or os.getenv("VAULT_ENV")
            )

            for key in required_keys:
                self.get_required_value(key)
        except Exception as e:
            self.logger.error("Configuration initialization failed", error=str(e))
            raise

    @classmethod
    def from_settings(cls, config: BaseConfig, required_keys: Iterable[str] = ()) -> "Configuration":
        return cls(
            MappingConfigurationSource.from_settings(config),
            environment=config.environment,
            required_keys=required_keys,
        )

    def __getitem__(self, key: str) -> Optional[str]:
        return self.get_value(key)

    def get_value(self, key: str) -> Optional[str]:
        """Return the raw value for ``key`` or None when it is absent."""
        try:
            return self._source.get(key)
        except Exception as e:
            self.logger.error("Configuration lookup failed", key=key, error=str(e))
            raise

    def get_required_value(self, key: str) -> str:
        """Return the value for ``key``, failing when it is missing or blank."""
        try:
            value = self.get_value(key)
            if value is None or not value.strip():
                raise InvalidArgumentError(key)
            return value
        except Exception as e:
            self.logger.error("Required configuration value missing", key=key, error=str(e))
            raise

    def get_int_value(self, key: str) -> Optional[int]:
        """Return ``key`` as an int; blank and unparsable values give None."""
        value = self.get_value(key) or ""
        if not value.strip():
            return None

        candidate = value.strip()
        if not INTEGER_PATTERN.fullmatch(candidate):
            return None
        return int(candidate)

    def get_required_bytes(self, key: str) -> bytes:
        """Base64-decode the required value for ``key``."""
        value = self.get_required_value(key)
        try:
            return base64.b64decode("".join(value.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            self.logger.error("Configuration value is not valid base64", key=key, error=str(e))
            raise InvalidFormatError(
                f"The value for '{key}' is not a valid Base-64 string.",
                details={"key": key}
            ) from e

    def get_section(self, key: str) -> ConfigurationSection:
        return self._source.get_section(key)

    def get_children(self) -> List[ConfigurationSection]:
        return self._source.get_children()

    def get_reload_token(self) -> ReloadToken:
        return self._source.get_reload_token()


def _combine(path: Optional[str], key: str) -> str:
    return f"{path}{KEY_DELIMITER}{key}" if path else key


def _flatten(data: Mapping[str, Any], parent: str = "") -> Iterable[Tuple[str, Optional[str]]]:
    for key, value in data.items():
        path = _combine(parent, str(key))
        if isinstance(value, Mapping):
            yield from _flatten(value, path)
        elif isinstance(value, (list, tuple)):
            yield from _flatten({str(index): item for index, item in enumerate(value)}, path)
        elif value is None:
            yield path, None
        else:
            yield path, str(value)
