from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "crudkit"

    CORS_ORIGINS: str = "http://localhost:3000"
    API_TOKEN: str = ""  # empty -> auth_guard lets every request through

    DATABASE_URL: str
    DATABASE_DRIVER: str = "postgres"  # postgres | mysql | sqlite
    DATABASE_MAX_CONNECTION: int = 10
    DATABASE_CONNECTION_TIMEOUT: int = 10000  # ms
    DATABASE_MAX_USES: int = 3600  # seconds before a pooled connection is recycled
    DATABASE_SSL: bool = False
    DATABASE_ECHO: bool = False
    DATABASE_CREATE_ALL: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FILE_ENABLED: bool = False
    LOG_DIR: str = "logs"
    LOG_RETENTION_DAYS: int = 7
    LOG_ZIP_INSTEAD_OF_DELETE: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
