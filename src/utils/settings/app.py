from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "PROD"
    API_VERSION: str = "0.0.1"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://explornatura.com",
        "https://www.explornatura.com",
        "https://app.explornatura.com",
    ]
    FRONTEND_URL: str = "http://localhost:3000"

    # Security settings
    MAX_REQUEST_SIZE: int = 1 * 1024 * 1024  # 1MB

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.upper() == "PROD"

    @property
    def is_development(self) -> bool:
        """Only an explicit DEV deployment relaxes the widget Origin rule."""
        return self.ENVIRONMENT.upper() == "DEV"

    def validate_prod(self) -> None:
        """Sanity checks for production environment."""
        if self.is_production:
            if not self.CORS_ORIGINS:
                raise ValueError("CORS_ORIGINS must be set in production")
