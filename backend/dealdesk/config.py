from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DEAL_API_BASE_URL: str = "http://localhost:5000"
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    AUTOSAVE_DEBOUNCE_MS: int = 1000
    DEFAULT_LEASE_TAX_RATE: str = "0.0825"
    DEFAULT_MONEY_FACTOR: str = "0.00125"
    DEFAULT_RESIDUAL_PERCENT: str = "60"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
