"""
Settings and configuration for objstream.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables when adapters are constructed.
"""
from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env"]


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for objstream fetchers and temp files.

    HTTP Settings:
        endpoint_url: Base URL for path-style object access ({endpoint}/{bucket}/{key})
        insecure: Allow plain http:// endpoints for local/dev use
        http_timeout_s: HTTP request timeout in seconds

    Azure Blob Settings:
        az_connection_string: Azure storage connection string
        az_account: Azure storage account name
        az_key: Azure storage account key
        az_blob_endpoint: Custom Azure blob endpoint (for Azurite/private endpoints)
        azure_timeout_s: Azure operation timeout

    Temp File Settings:
        temp_dir: Directory for scoped temp files (None = platform temp dir)
        temp_prefix: Name prefix for temp files, also used by the startup sweep
        read_chunk_size: Chunk size used when copying streams into temp files
    """
    # HTTP settings
    endpoint_url: Optional[str] = None
    insecure: bool = False
    http_timeout_s: float = 30.0

    # Azure settings
    az_connection_string: Optional[str] = None
    az_account: Optional[str] = None
    az_key: Optional[str] = None
    az_blob_endpoint: Optional[str] = None
    azure_timeout_s: float = 60.0

    # Temp file settings
    temp_dir: Optional[str] = None
    temp_prefix: str = "objstream-"
    read_chunk_size: int = 1024 * 1024

    def __post_init__(self):
        """Validate settings on construction."""
        if self.endpoint_url is not None:
            if not re.match(r"^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?(?:/.*)?$", self.endpoint_url):
                raise ValueError(f"Invalid endpoint_url format: {self.endpoint_url}")
            if self.endpoint_url.startswith("http://") and not self.insecure:
                raise ValueError(f"Plain http endpoint requires insecure=True: {self.endpoint_url}")

        # Validate timeouts are positive
        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.azure_timeout_s <= 0:
            raise ValueError(f"azure_timeout_s must be positive, got {self.azure_timeout_s}")

        if self.read_chunk_size <= 0:
            raise ValueError(f"read_chunk_size must be positive, got {self.read_chunk_size}")

        # An empty prefix would make the startup sweep match every temp entry
        if not self.temp_prefix:
            raise ValueError("temp_prefix cannot be empty")
        if "/" in self.temp_prefix or "\\" in self.temp_prefix:
            raise ValueError(f"temp_prefix cannot contain path separators: {self.temp_prefix}")

        # Validate Azure auth: either connection string OR (account + key)
        has_conn_str = bool(self.az_connection_string)
        has_account_key = bool(self.az_account and self.az_key)

        if has_conn_str and has_account_key:
            raise ValueError("Specify either az_connection_string OR (az_account + az_key), not both")

        if self.az_account and not self.az_key:
            raise ValueError("az_account specified but az_key is missing")
        if self.az_key and not self.az_account:
            raise ValueError("az_key specified but az_account is missing")

    def resolved_temp_dir(self) -> str:
        """Directory temp files are created in and swept from."""
        return self.temp_dir or tempfile.gettempdir()


# Settings loading functions (no caching)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        HTTP:
        - OBJSTREAM_ENDPOINT_URL (optional)
        - OBJSTREAM_INSECURE (default: false)
        - OBJSTREAM_HTTP_TIMEOUT (default: 30.0)

        Azure:
        - AZURE_STORAGE_CONNECTION_STRING (optional)
        - AZURE_STORAGE_ACCOUNT (optional)
        - AZURE_STORAGE_KEY (optional)
        - OBJSTREAM_AZURE_BLOB_ENDPOINT (optional, for Azurite/custom endpoints)
        - OBJSTREAM_AZURE_TIMEOUT (default: 60.0)

        Temp files:
        - OBJSTREAM_TEMP_DIR (default: platform temp dir)
        - OBJSTREAM_TEMP_PREFIX (default: objstream-)
        - OBJSTREAM_READ_CHUNK_SIZE (default: 1048576)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
        This keeps tests isolated and avoids global state.
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        endpoint_url=os.getenv("OBJSTREAM_ENDPOINT_URL") or None,
        insecure=str_to_bool(os.getenv("OBJSTREAM_INSECURE", "false")),
        http_timeout_s=get_float("OBJSTREAM_HTTP_TIMEOUT", 30.0),
        az_connection_string=os.getenv("AZURE_STORAGE_CONNECTION_STRING"),
        az_account=os.getenv("AZURE_STORAGE_ACCOUNT"),
        az_key=os.getenv("AZURE_STORAGE_KEY"),
        az_blob_endpoint=os.getenv("OBJSTREAM_AZURE_BLOB_ENDPOINT"),
        azure_timeout_s=get_float("OBJSTREAM_AZURE_TIMEOUT", 60.0),
        temp_dir=os.getenv("OBJSTREAM_TEMP_DIR") or None,
        temp_prefix=os.getenv("OBJSTREAM_TEMP_PREFIX", "objstream-"),
        read_chunk_size=get_int("OBJSTREAM_READ_CHUNK_SIZE", 1024 * 1024),
    )
