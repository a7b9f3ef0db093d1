import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str
    JWT_ISS: str = "larder"
    JWT_EXP_MIN: int = 12*60
    AUTH_MODE: str = "jwt"  # jwt | none
    # dashboard memo cache
    CACHE_TTL_SEC: float = 30.0
    CACHE_MIN_INTERVAL_SEC: float = 3.0
    FETCH_TIMEOUT_SEC: float = 5.0
    TRACK_INVENTORY_DEFAULT: bool = True
    SHOPPING_PAR_FACTOR: float = 2.0
    EXPIRY_WINDOW_DAYS: int = 7
    LOG_LEVEL: str = "INFO"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()

# Global logging (module-level loggers inherit this)
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
