from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "groupacl"

    # Database holding groups, memberships and rules
    database_url: str = "sqlite:///./groupacl.db"
    database_echo: bool = False

    # Optional YAML file; keys it sets override the values below
    config_path: Optional[str] = None

    # Action catalog (YAML or rights.xml)
    catalog_path: str = "rights.xml"

    # Access control
    guest_group_id: str = "9"
    superuser_resource: str = "app"
    superuser_action: str = "admin"
    membership_cache_enabled: bool = True
    membership_cache_ttl: float = 60.0
    membership_cache_maxsize: int = 1024

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/var/log/groupacl"
    log_to_file: bool = False

    model_config = SettingsConfigDict(
        env_prefix="GROUPACL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
