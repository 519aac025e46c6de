from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://gfscore:gfscore@db:5432/gfscore"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://gfscore.app,https://admin.gfscore.app"
    CORS_ORIGINS: str = "*"

    LOG_LEVEL: str = "INFO"
    # One JSON object per line instead of the plain text format.
    LOG_JSON: bool = False
    SQL_ECHO: bool = False

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
