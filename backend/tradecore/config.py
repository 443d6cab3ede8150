"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from pydantic import computed_field
from functools import lru_cache
from typing import List
from urllib.parse import quote_plus


class Settings(BaseSettings):
    # Database Configuration (Individual Parameters)
    db_driver: str = "sqlite"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "tradecore.db"
    db_user: str = ""
    db_password: str = ""

    @computed_field
    @property
    def database_url(self) -> str:
        """Compile database URL from individual parameters"""
        if self.db_driver.startswith("sqlite"):
            return f"{self.db_driver}:///{self.db_name}"

        encoded_user = quote_plus(self.db_user)
        encoded_password = quote_plus(self.db_password)

        # For Cloud SQL Unix sockets, don't include the socket path in the URL
        if self.db_host.startswith('/cloudsql/'):
            return f"{self.db_driver}://{encoded_user}:{encoded_password}@/{self.db_name}"
        return f"{self.db_driver}://{encoded_user}:{encoded_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Application
    app_name: str = "Base Exchange Trade Core"
    debug: bool = False
    create_tables_on_startup: bool = True

    # CORS - comma-separated list
    allowed_origins: str = "http://localhost:5173"

    # Storage retries for transient faults (lock timeouts, dropped connections, CAS conflicts)
    storage_retry_attempts: int = 3
    storage_retry_backoff_ms: int = 50

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    log_to_file: bool = False
    log_file_path: str = "logs/tradecore.log"
    log_max_size_mb: int = 10
    log_backup_count: int = 5
    log_to_console: bool = True
    log_verbosity: str = "minimal"  # "minimal" or "full" - minimal keeps transition logs at DEBUG

    def get_allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(',') if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()
