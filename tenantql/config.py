"""
Configuration settings for tenantql.

Uses Pydantic Settings to load environment variables for database connections,
schema resolution, tenant enforcement, paging limits and logging. Core
functions take these values as explicit parameters; only the facades and the
CLI read them from here.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("tenantql", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Schema resolution
    db_schema: str = Field("public", alias="DB_SCHEMA")
    schema_dir: Optional[Path] = Field(None, alias="SCHEMA_DIR")
    schema_cache_ttl_seconds: float = Field(300.0, alias="SCHEMA_CACHE_TTL_SECONDS")

    # Tenant enforcement
    tenant_column: str = Field("company_id", alias="TENANT_COLUMN")
    legacy_tenant_column: str = Field("com_id", alias="LEGACY_TENANT_COLUMN")
    strict_join_tenancy: bool = Field(False, alias="STRICT_JOIN_TENANCY")

    # Table access policy (comma separated, "*" denies everything)
    crud_denied_tables: str = Field("", alias="CRUD_DENIED_TABLES")
    querydsl_denied_tables: str = Field("", alias="QUERYDSL_DENIED_TABLES")

    # Paging
    select_default_per_page: int = Field(25, alias="SELECT_DEFAULT_PER_PAGE")
    crud_default_per_page: int = Field(100, alias="CRUD_DEFAULT_PER_PAGE")
    max_per_page: int = Field(200, alias="MAX_PER_PAGE")
    query_max_limit: int = Field(200, alias="QUERY_MAX_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("schema_dir", mode="before")
    @classmethod
    def _blank_schema_dir(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def legacy_tenant(self) -> Optional[str]:
        """Legacy tenant column, or None when disabled."""
        return self.legacy_tenant_column.strip() or None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
