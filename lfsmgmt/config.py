"""
lfsmgmt Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the LFSMGMT_ENV_FILE environment variable
"""

import functools
from enum import Enum
from pathlib import Path
from typing import Annotated, Any
from class_doc import extract_docs_from_cls_obj
from dotenv import load_dotenv
from pydantic import model_validator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "lfsmgmt_"


class MetaStoreOptions(str, Enum):
    #: keep objects and users in process memory (lost on restart, useful for testing)
    memory = "memory"

    #: keep objects and users in a local sqlite database file (see meta_db)
    sqlite = "sqlite"

    #: keep objects and users in two elasticsearch indices (see elastic_host and system_index)
    elastic = "elastic"


for field, doc in extract_docs_from_cls_obj(MetaStoreOptions).items():
    MetaStoreOptions[field].__doc__ = "\n".join(doc)


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")
    host: Annotated[str, Field(description="Interface the management server listens on")] = "0.0.0.0"
    port: Annotated[int, Field(description="Port the management server listens on")] = 8080

    admin_user: Annotated[
        str,
        Field(
            description="Username for the management pages. If this or admin_pass is empty, /mgmt is disabled",
        ),
    ] = ""
    admin_pass: Annotated[
        str,
        Field(
            description="Password for the management pages. If this or admin_user is empty, /mgmt is disabled",
        ),
    ] = ""

    content_path: Annotated[
        Path,
        Field(
            description="Root of the sharded object tree (objects live at <root>/ab/cd/ef...)",
        ),
    ] = Path("lfs-content")

    meta_store: Annotated[
        MetaStoreOptions, Field(description="Where to keep object and user metadata")
    ] = MetaStoreOptions.sqlite

    meta_db: Annotated[
        Path,
        Field(
            description="Location of the sqlite metadata database (only used if meta_store is sqlite)",
        ),
    ] = Path("lfs.db")

    elastic_password: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch password. This the password for the 'elastic' user when Elastic xpack security is enabled"
            )
        ),
    ] = None

    elastic_host: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch host. "
                "Default: https://localhost:9200 if elastic_password is set, http://localhost:9200 otherwise"
            )
        ),
    ] = None

    elastic_verify_ssl: Annotated[
        bool | None,
        Field(
            description=(
                "Elasticsearch verify SSL (only used if elastic_password is set). Default: True unless host is localhost)"
            ),
        ),
    ] = None

    system_index: Annotated[
        str,
        Field(
            description="Prefix for the elasticsearch indices holding object and user metadata",
        ),
    ] = "lfsmgmt"

    refresh_workers: Annotated[
        int,
        Field(
            ge=1,
            description="Number of threads used to walk the top level shard directories during a refresh",
        ),
    ] = 1

    @model_validator(mode="after")
    def set_ssl(self: Any) -> "Settings":
        if not self.elastic_host:
            self.elastic_host = ("https" if self.elastic_password else "http") + "://localhost:9200"
        if self.elastic_verify_ssl is None:
            self.elastic_verify_ssl = self.elastic_host not in {
                "http://localhost:9200",
                "https://localhost:9200",
            }
        return self

    @property
    def admin_enabled(self) -> bool:
        return bool(self.admin_user and self.admin_pass)

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Load the .env file ourselves so a custom env_file location is honoured
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def validate_settings(settings: Settings | None = None) -> str | None:
    settings = settings or get_settings()
    if not settings.admin_enabled:
        return (
            "No admin_user and/or admin_pass configured. "
            f"The management pages will answer 404 until {ENV_PREFIX.upper()}ADMIN_USER "
            f"and {ENV_PREFIX.upper()}ADMIN_PASS are set."
        )
    if not settings.content_path.is_dir():
        return f"Content path {settings.content_path} does not exist (yet), refresh will not find any objects"
    return None


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
