"""Configuration management for s3-httpcache.

Handles loading, saving, and validating TOML configuration stored in:
- macOS: ~/.config/s3cache/config.toml
- Linux: ~/.config/s3cache/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\s3cache\\config.toml

Credentials are only ever read from environment variables so they never
appear in config files.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import tomllib
import tomli_w

from s3_httpcache.location import infer_region

ACCESS_KEY_ENV = "S3_ACCESS_KEY"
SECRET_KEY_ENV = "S3_SECRET_KEY"

DEFAULT_REGION = "us-east-1"
DEFAULT_SERVICE = "s3"


@dataclass
class CacheConfig:
    """Configuration for an S3-backed cache.

    Attributes:
        bucket_url: Full URL of the bucket, including bucket name and region,
            e.g. "https://s3-us-west-2.amazonaws.com/mybucket"
        access_key: Access key ID (never saved to disk)
        secret_key: Secret access key (never saved to disk)
        region: Region used for request signing
        service: Storage service name
        connect_timeout: Socket connect timeout in seconds
        read_timeout: Socket read timeout in seconds
        max_attempts: botocore retry attempts (0 keeps botocore's default)
        raise_errors: Propagate backend failures instead of dropping them
    """

    # Storage
    bucket_url: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE

    # Client
    connect_timeout: float = 60.0
    read_timeout: float = 60.0
    max_attempts: int = 0

    # Cache behaviour
    raise_errors: bool = False

    @classmethod
    def from_env(cls, bucket_url: str) -> "CacheConfig":
        """Build a config for a bucket, taking credentials from the environment.

        Reads S3_ACCESS_KEY and S3_SECRET_KEY. Either may be unset, in which
        case requests will fail to authenticate at the backend.

        Args:
            bucket_url: Full URL of the bucket

        Returns:
            CacheConfig with credentials filled in
        """
        return cls(
            bucket_url=bucket_url,
            access_key=os.environ.get(ACCESS_KEY_ENV, ""),
            secret_key=os.environ.get(SECRET_KEY_ENV, ""),
            region=infer_region(bucket_url) or DEFAULT_REGION,
        )

    @classmethod
    def load(cls, path: Optional[Path] = None, apply_env: bool = True) -> "CacheConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)
            apply_env: Apply environment variable overrides

        Returns:
            CacheConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()

        if "s3" in data:
            s3 = data["s3"]
            config.bucket_url = s3.get("bucket_url", config.bucket_url)
            config.service = s3.get("service", config.service)
            if "region" in s3:
                config.region = s3["region"]
            else:
                config.region = infer_region(config.bucket_url) or config.region

        if "client" in data:
            client = data["client"]
            config.connect_timeout = float(client.get("connect_timeout", config.connect_timeout))
            config.read_timeout = float(client.get("read_timeout", config.read_timeout))
            config.max_attempts = int(client.get("max_attempts", config.max_attempts))

        if "cache" in data:
            config.raise_errors = bool(data["cache"].get("raise_errors", config.raise_errors))

        if apply_env:
            config.apply_env()
        return config

    def apply_env(self) -> None:
        """Override values from environment variables (takes precedence)."""
        env_bucket_url = os.environ.get("S3CACHE_BUCKET_URL")
        if env_bucket_url:
            self.bucket_url = env_bucket_url

        env_region = os.environ.get("S3CACHE_REGION")
        if env_region:
            self.region = env_region

        self.access_key = os.environ.get(ACCESS_KEY_ENV, self.access_key)
        self.secret_key = os.environ.get(SECRET_KEY_ENV, self.secret_key)

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Credentials are not written.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "s3": {
                "bucket_url": self.bucket_url,
                "region": self.region,
                "service": self.service,
            },
            "client": {
                "connect_timeout": self.connect_timeout,
                "read_timeout": self.read_timeout,
                "max_attempts": self.max_attempts,
            },
            "cache": {"raise_errors": self.raise_errors},
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def validate(self) -> None:
        """Check that the config can back a cache.

        Raises:
            ValueError: If no bucket URL is configured
        """
        if not self.bucket_url:
            raise ValueError(
                "Bucket URL not set. "
                "Set S3CACHE_BUCKET_URL, pass --bucket-url, or run "
                "'s3cache config set bucket_url <url>'."
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if key in ("access_key", "secret_key") or not hasattr(self, key):
            return default
        return getattr(self, key)

    def set(self, key: str, value: str) -> None:
        """Set a configuration value by key.

        Args:
            key: Configuration key
            value: Configuration value

        Raises:
            ValueError: If the key is unknown, a credential, or the value
                does not convert to the key's type
        """
        if key in ("access_key", "secret_key"):
            raise ValueError(
                f"Credentials are read from {ACCESS_KEY_ENV} and {SECRET_KEY_ENV}, "
                "not from the config file"
            )
        if not hasattr(self, key):
            raise ValueError(f"Invalid config key: {key}")

        # Region follows the bucket URL unless it was set explicitly
        if key == "bucket_url" and self.region in (DEFAULT_REGION, infer_region(self.bucket_url)):
            self.region = infer_region(value) or DEFAULT_REGION

        # Try to preserve type
        current = getattr(self, key)
        if isinstance(current, bool):
            new_value = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            new_value = int(value)
        elif isinstance(current, float):
            new_value = float(value)
        else:
            new_value = value

        setattr(self, key, new_value)


def get_config_dir() -> Path:
    """Get the platform-specific config directory.

    Returns:
        Path to the config directory for s3cache.
    """
    if sys.platform == "darwin" or sys.platform == "linux":
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "s3cache"
        return Path.home() / ".config" / "s3cache"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "s3cache"
        return Path.home() / "AppData" / "Roaming" / "s3cache"
    else:
        return Path.home() / ".config" / "s3cache"


def get_config_path() -> Path:
    """Get the path to the config.toml file.

    Returns:
        Path to config.toml
    """
    return get_config_dir() / "config.toml"
