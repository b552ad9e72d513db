from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Shared secret used by the login service to sign dashboard bearer tokens
    DASHBOARD_JWT_SECRET: str = "dev-dashboard-jwt-secret"
    DASHBOARD_JWT_AUDIENCE: str = "dashboard"
    DASHBOARD_JWT_EXPIRES_MINUTES: int = 60
