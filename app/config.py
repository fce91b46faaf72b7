"""All settings, loaded from the environment or the .env file."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "Journal Lookup API"
    app_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    # NCBI E-utilities
    contact_email: str = "pubmed-search@example.com"
    pubmed_api_key: str = ""
    eutils_base_url: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
    eutils_tool: str = "PubmedSearchApp"
    eutils_timeout: float = 30
    eutils_max_retries: int = 3
    eutils_queue_timeout: float = 60

    # Journal database
    journals_data_dir: Path = Path("data/journals")

    # Inbound rate limiting
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"
    rate_limit_catalog: str = "30/minute"
    rate_limit_management: str = "10/minute"
    rate_limit_storage_uri: str = ""

    @property
    def is_production(self) -> bool:
        return not any(h in self.app_url for h in ("localhost", "127.0.0.1"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
