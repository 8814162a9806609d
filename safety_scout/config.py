"""Configuration and API key management for Safety Scout.

This module holds the model settings, the on-disk YAML configuration and the
Gemini API key storage backends. The configuration is an explicit object that
is handed to the AI client; nothing here binds credentials at import time.

Security notes:
- API keys are never logged or printed
- Encrypted file backend uses Fernet symmetric encryption
- Keyring backend leverages OS-level credential storage
"""

import base64
import hashlib
import logging
import os
import platform
from enum import Enum
from pathlib import Path
from typing import Literal

import yaml
from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# =============================================================================
# Enums
# =============================================================================


class KeyStorageBackend(str, Enum):
    """Backend options for storing API keys securely.

    Attributes:
        ENV: Store in environment variable (GEMINI_API_KEY)
        KEYRING: Use system keyring (OS credential manager)
        ENCRYPTED_FILE: Store in Fernet-encrypted local file
    """

    ENV = "env"
    KEYRING = "keyring"
    ENCRYPTED_FILE = "encrypted_file"


# =============================================================================
# Configuration Models
# =============================================================================


class AISettings(BaseModel):
    """Settings for the Gemini model.

    Attributes:
        model_name: The Gemini model used for both analysis and chat
        temperature: Sampling temperature, or None for the model default
        max_tokens: Output token cap, or None for the model default
        use_search: Ground analysis replies with Google Search
    """

    model_name: str = "gemini-2.5-flash"
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=100, le=100000)
    use_search: bool = True


class AppConfig(BaseModel):
    """Main application configuration.

    Can be loaded from and saved to YAML files.

    Attributes:
        ai: Gemini settings
        key_storage_backend: How API keys are stored
        encrypted_key_file_path: Path to encrypted key file (if using that backend)
        log_level: Default log level for the CLI
    """

    ai: AISettings = Field(default_factory=AISettings)
    key_storage_backend: KeyStorageBackend = KeyStorageBackend.ENV
    encrypted_key_file_path: Path | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    model_config = {"arbitrary_types_allowed": True}

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the platform-appropriate default configuration path.

        Returns:
            Path to the default config file location:
            - Windows: %APPDATA%/safety-scout/config.yaml
            - macOS: ~/Library/Application Support/safety-scout/config.yaml
            - Linux: ~/.config/safety-scout/config.yaml
        """
        system = platform.system()

        if system == "Windows":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif system == "Darwin":  # macOS
            base = Path.home() / "Library" / "Application Support"
        else:  # Linux and others
            xdg_config = os.environ.get("XDG_CONFIG_HOME")
            base = Path(xdg_config) if xdg_config else Path.home() / ".config"

        return base / "safety-scout" / "config.yaml"

    @classmethod
    def load_from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            Loaded AppConfig instance.

        Raises:
            ConfigurationError: If file cannot be read or parsed.
        """
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}")

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        try:
            return cls.model_validate(data)
        except ValueError as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

    def save_to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file.

        Creates parent directories if they don't exist.

        Args:
            path: Path to save the configuration file.

        Raises:
            ConfigurationError: If file cannot be written.
        """
        data = {
            "ai": self.ai.model_dump(),
            "key_storage_backend": self.key_storage_backend.value,
            "encrypted_key_file_path": (
                str(self.encrypted_key_file_path) if self.encrypted_key_file_path else None
            ),
            "log_level": self.log_level,
        }

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")


# =============================================================================
# API Key Manager
# =============================================================================


class APIKeyManager:
    """Stores and looks up the Gemini API key for one backend.

    ``env`` reads ``GEMINI_API_KEY`` and falls back to ``API_KEY``; storing
    only sets ``GEMINI_API_KEY`` for the running process. ``keyring`` uses
    the OS credential store. ``encrypted_file`` keeps a Fernet token whose
    key is derived from this machine and user, so the file is useless when
    copied elsewhere.
    """

    SERVICE_NAME = "safety-scout"
    KEYRING_USER = "gemini_api_key"
    ENV_VAR_NAMES = ("GEMINI_API_KEY", "API_KEY")
    MIN_KEY_LENGTH = 10
    MAX_KEY_LENGTH = 256

    def __init__(
        self,
        backend: KeyStorageBackend,
        encrypted_file_path: Path | None = None,
    ) -> None:
        if backend == KeyStorageBackend.ENCRYPTED_FILE and not encrypted_file_path:
            raise ConfigurationError("encrypted_file backend needs a key file path")

        self.backend = backend
        self.encrypted_file_path = encrypted_file_path

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def store_key(self, key: str) -> None:
        """Validate and store a key in this manager's backend.

        Raises:
            ConfigurationError: If the key is malformed or cannot be stored.
        """
        self._check_key(key)

        if self.backend == KeyStorageBackend.ENV:
            os.environ[self.ENV_VAR_NAMES[0]] = key
        elif self.backend == KeyStorageBackend.KEYRING:
            self._keyring_store(key)
        else:
            self._file_store(key)

    def retrieve_key(self) -> str | None:
        """Return the stored key, or None when this backend holds none.

        Raises:
            ConfigurationError: If the encrypted key file cannot be read back.
        """
        found = self._lookup()
        return found[0] if found else None

    def key_source(self) -> str | None:
        """Describe where the key was found, e.g. ``GEMINI_API_KEY``."""
        try:
            found = self._lookup()
        except ConfigurationError:
            return None
        return found[1] if found else None

    def is_key_configured(self) -> bool:
        """True when a key of plausible length can be read back."""
        try:
            key = self.retrieve_key()
        except ConfigurationError:
            return False
        return key is not None and len(key) >= self.MIN_KEY_LENGTH

    # -------------------------------------------------------------------------
    # Backends
    # -------------------------------------------------------------------------

    def _lookup(self) -> tuple[str, str] | None:
        if self.backend == KeyStorageBackend.ENV:
            for name in self.ENV_VAR_NAMES:
                value = os.environ.get(name)
                if value:
                    return value, name
            return None

        if self.backend == KeyStorageBackend.KEYRING:
            value = self._keyring_load()
            return (value, "system keyring") if value else None

        value = self._file_load()
        return (value, str(self.encrypted_file_path)) if value else None

    def _keyring_store(self, key: str) -> None:
        try:
            import keyring

            keyring.set_password(self.SERVICE_NAME, self.KEYRING_USER, key)
        except Exception as e:
            raise ConfigurationError(f"Could not write to the system keyring: {e}")

    def _keyring_load(self) -> str | None:
        try:
            import keyring

            return keyring.get_password(self.SERVICE_NAME, self.KEYRING_USER)
        except Exception as e:
            logger.warning(f"System keyring unavailable: {type(e).__name__}")
            return None

    def _file_store(self, key: str) -> None:
        token = self._fernet().encrypt(key.encode("utf-8"))
        try:
            self.encrypted_file_path.parent.mkdir(parents=True, exist_ok=True)
            self.encrypted_file_path.write_bytes(token)
            if platform.system() != "Windows":
                os.chmod(self.encrypted_file_path, 0o600)
        except OSError as e:
            raise ConfigurationError(f"Could not write key file {self.encrypted_file_path}: {e}")

    def _file_load(self) -> str | None:
        if not self.encrypted_file_path.exists():
            return None
        try:
            token = self.encrypted_file_path.read_bytes()
            return self._fernet().decrypt(token).decode("utf-8")
        except InvalidToken:
            raise ConfigurationError(
                f"Key file {self.encrypted_file_path} was written on another machine or is corrupt"
            )
        except OSError as e:
            raise ConfigurationError(f"Could not read key file {self.encrypted_file_path}: {e}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_key(self, key: str) -> None:
        # Messages never echo the key itself
        if not isinstance(key, str) or not key:
            raise ConfigurationError("API key is empty")
        if key != key.strip():
            raise ConfigurationError("API key has leading or trailing whitespace")
        if not self.MIN_KEY_LENGTH <= len(key) <= self.MAX_KEY_LENGTH:
            raise ConfigurationError(
                f"API key must be {self.MIN_KEY_LENGTH}-{self.MAX_KEY_LENGTH} characters long"
            )

    def _fernet(self) -> Fernet:
        user = os.environ.get("USERNAME") or os.environ.get("USER") or "default"
        seed = ":".join([self.SERVICE_NAME, platform.node(), platform.machine(), user])
        digest = hashlib.sha256(seed.encode("utf-8")).digest()
        return Fernet(base64.urlsafe_b64encode(digest))


# =============================================================================
# Module-Level Functions
# =============================================================================


def get_config(path: Path | None = None) -> AppConfig:
    """Load configuration from the given or default path, or return defaults.

    A missing or corrupted file yields the default configuration.

    Args:
        path: Explicit config file. Uses the platform default if None.

    Returns:
        Loaded or default AppConfig instance.
    """
    config_path = path or AppConfig.get_default_config_path()

    if config_path.exists():
        try:
            return AppConfig.load_from_yaml(config_path)
        except ConfigurationError:
            return AppConfig()

    return AppConfig()


def get_key_manager(config: AppConfig) -> APIKeyManager:
    """Build the key manager described by a configuration."""
    return APIKeyManager(config.key_storage_backend, config.encrypted_key_file_path)


def configure_api_key(
    key: str,
    backend: KeyStorageBackend,
    config_path: Path | None = None,
) -> None:
    """Store an API key and record the chosen backend in the config file.

    Args:
        key: The Gemini API key to store.
        backend: Storage backend to use.
        config_path: Config file to update. Uses the platform default if None.

    Raises:
        ConfigurationError: If storage fails.
    """
    config_path = config_path or AppConfig.get_default_config_path()
    config = get_config(config_path)

    encrypted_path = None
    if backend == KeyStorageBackend.ENCRYPTED_FILE:
        encrypted_path = config.encrypted_key_file_path or (
            config_path.parent / "credentials.enc"
        )

    manager = APIKeyManager(backend, encrypted_path)
    manager.store_key(key)

    config.key_storage_backend = backend
    if encrypted_path:
        config.encrypted_key_file_path = encrypted_path

    config.save_to_yaml(config_path)

