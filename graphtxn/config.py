"""Settings — environment-driven defaults for the process entry point.

Every field can be set as GRAPHTXN_<FIELD> or in a .env file;
command-line options override them.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Toggle run configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GRAPHTXN_",
        env_file=".env",
        extra="ignore",
    )

    # Store
    backend: Literal["dgraph", "memory"] = Field("dgraph", description="Store backend")
    address: str = Field("localhost:9080", description="Dgraph alpha gRPC address")
    drop_all: bool = Field(False, description="Drop all data and schema before installing the schema")

    # Toggle
    terms: str = Field("Vikram Mali", description="Words matched against the name index")
    name: str | None = Field(None, description="Name of a created record (defaults to terms)")
    balance: int = Field(26, description="Balance of a created record")
    type_tag: str = Field("user", description="Type label of a created record")
    placeholder: str = Field("_:alice", description="Blank node name of a created record")

    # Observability
    log_level: str = Field("INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field("console", description="Log renderer")


@lru_cache
def get_settings() -> Settings:
    return Settings()
