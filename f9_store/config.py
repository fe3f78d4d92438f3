"""Typed configuration for selecting and building a store.

Settings are read from environment variables prefixed with ``F9_STORE_``;
nested sections use ``__`` as the delimiter:

    F9_STORE_STORE_TYPE=s3
    F9_STORE_S3__BUCKET=reports
    F9_STORE_S3__REGION_NAME=eu-west-1

Example:

    >>> from f9_store.config import StoreSettings
    >>> settings = StoreSettings(store_type="local", local={"root": "/data"})
    >>> settings.local.root
    PosixPath('/data')

"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .interfaces import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    LOCAL_CHUNK_SIZE,
    MULTIPART_CHUNK_SIZE,
)

# S3 rejects parts below 5 MiB except for the last one.
MIN_MULTIPART_CHUNK_SIZE = 5 * 1024 * 1024


class StoreType(str, Enum):
    """Available store kinds."""

    LOCAL = "local"
    WEBDAV = "webdav"
    S3 = "s3"
    NULL = "null"


class LocalSettings(BaseModel):
    """Options for :class:`~f9_store.local.LocalStore`."""

    root: Optional[Path] = Field(default=None, description="Store root; defaults to the CWD")
    create_root: bool = True
    file_mode: int = DEFAULT_FILE_MODE
    dir_mode: int = DEFAULT_DIR_MODE
    chunk_size: int = Field(default=LOCAL_CHUNK_SIZE, gt=0)


class WebDAVSettings(BaseModel):
    """Options for :class:`~f9_store.webdav.WebDAVStore`."""

    host: Optional[str] = Field(default=None, description="Base URL of the share")
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    timeout: float = Field(default=30.0, gt=0)
    chunk_size: int = Field(default=LOCAL_CHUNK_SIZE, gt=0)


class S3Settings(BaseModel):
    """Options for :class:`~f9_store.s3.S3Store`."""

    bucket: Optional[str] = None
    region_name: Optional[str] = None
    endpoint_url: Optional[str] = None
    profile_name: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[SecretStr] = None
    chunk_size: int = MULTIPART_CHUNK_SIZE
    waiter_delay: int = Field(default=5, gt=0)
    waiter_max_attempts: int = Field(default=20, gt=0)

    @field_validator("chunk_size")
    @classmethod
    def _check_chunk_size(cls, value: int) -> int:
        if value < MIN_MULTIPART_CHUNK_SIZE:
            message = f"chunk_size must be at least {MIN_MULTIPART_CHUNK_SIZE} bytes"
            raise ValueError(message)
        return value


class StoreSettings(BaseSettings):
    """Top-level settings: the selected kind plus per-kind sections."""

    store_type: StoreType = StoreType.LOCAL
    local: LocalSettings = Field(default_factory=LocalSettings)
    webdav: WebDAVSettings = Field(default_factory=WebDAVSettings)
    s3: S3Settings = Field(default_factory=S3Settings)

    model_config = SettingsConfigDict(
        env_prefix="F9_STORE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("store_type", mode="before")
    @classmethod
    def _normalise_store_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


@lru_cache
def get_settings() -> StoreSettings:
    """Return settings loaded once from the environment."""
    return StoreSettings()
