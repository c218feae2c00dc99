from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "airscan-leak-service"

    # sqlite file backing the document store
    DATABASE_PATH: str = "data/airscan.db"
    LEAKS_COLLECTION: str = "airscan_leaks"
    ALERTS_COLLECTION: str = "airscan_alerts_queue"

    # hourly cost = lpm * ANNUAL_COST_PER_LPM / HOURS_PER_YEAR
    ANNUAL_COST_PER_LPM: float = 350.0
    HOURS_PER_YEAR: int = 8760

    AUTH_ENABLED: bool = False
    JWT_SECRET: str = "change_me"
    JWT_ALGORITHM: str = "HS256"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
