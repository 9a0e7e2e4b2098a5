"""
Application configuration module.
Handles environment variables and app settings.

Settings are read once at process start; components never read them
directly. Instead ``Settings.data_source()`` builds an immutable
``DataSourceConfig`` that is passed to the clients and builders.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class FieldMapping:
    """Upstream column names for each logical crash property."""
    latitude: str = "latitude"
    longitude: str = "longitude"
    date: str = "collision_date"
    county: str = "county"
    severity: str = "severity"
    killed: str = "NumberKilled"


@dataclass(frozen=True)
class DataSourceConfig:
    """Everything a client needs to talk to the upstream data service."""
    backend: str = "ckan"
    ckan_sql_api_base: str = "https://data.ca.gov/api/3/action/datastore_search_sql"
    resource_id: str = ""
    fields: FieldMapping = FieldMapping()
    socrata_domain: str = "data.chhs.ca.gov"
    socrata_dataset_id: str = ""
    socrata_app_token: Optional[str] = None
    socrata_has_location: bool = True
    timeout: float = 30.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "CrashMap"
    app_version: str = "0.1.0"
    debug: bool = False

    # Upstream selection
    backend: Literal["ckan", "socrata"] = "ckan"

    # CKAN datastore SQL endpoint
    ckan_sql_api_base: str = "https://data.ca.gov/api/3/action/datastore_search_sql"
    ckan_resource_id: str = ""

    # Column names vary between published datasets
    ckan_lat_field: str = "latitude"
    ckan_lon_field: str = "longitude"
    ckan_date_field: str = "collision_date"
    ckan_county_field: str = "county"
    ckan_severity_field: str = "severity"
    ckan_killed_field: str = "NumberKilled"

    # Socrata SODA endpoint
    socrata_domain: str = "data.chhs.ca.gov"
    socrata_dataset_id: str = ""
    socrata_app_token: Optional[str] = None
    socrata_has_location: bool = True

    # Outbound HTTP
    request_timeout: float = 30.0

    # Hint for shared caches in front of this API
    cache_control: str = "s-maxage=30, stale-while-revalidate=60"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    def data_source(self) -> DataSourceConfig:
        """Build the immutable upstream configuration."""
        return DataSourceConfig(
            backend=self.backend,
            ckan_sql_api_base=self.ckan_sql_api_base,
            resource_id=self.ckan_resource_id.strip(),
            fields=FieldMapping(
                latitude=self.ckan_lat_field,
                longitude=self.ckan_lon_field,
                date=self.ckan_date_field,
                county=self.ckan_county_field,
                severity=self.ckan_severity_field,
                killed=self.ckan_killed_field,
            ),
            socrata_domain=self.socrata_domain,
            socrata_dataset_id=self.socrata_dataset_id.strip(),
            socrata_app_token=self.socrata_app_token or None,
            socrata_has_location=self.socrata_has_location,
            timeout=self.request_timeout,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
