from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    database_url: str = "sqlite:///./crowdstack.db"

    # Identity provider (hosted auth issues HS256 access tokens)
    IDENTITY_JWT_SECRET: str = "change-me-identity"
    IDENTITY_JWT_AUD: str = "authenticated"

    # JWT (cookie-based session)
    JWT_SECRET: str = "change-me"
    JWT_ISS: str = "crowdstack-api"
    JWT_AUD: str = "crowdstack-web"

    # QR passes are signed with their own key so session keys can rotate independently
    QR_PASS_SECRET: str = "change-me-qr"

    # Cookie
    COOKIE_DOMAIN: str | None = None
    COOKIE_SECURE: bool = True
    ACCESS_TOKEN_TTL_SECONDS: int = 60 * 60 * 24 * 7  # 7 days

    # Local development: accept a plain localhost_user_id cookie
    DEV_AUTH_FALLBACK: bool = False

    CORS_ORIGINS: str = "http://localhost:3000"

    # Email (Postmark)
    POSTMARK_SERVER_TOKEN: str = ""
    EMAIL_FROM: str = "CrowdStack <notifications@crowdstack.app>"
    PUBLIC_APP_URL: str = "https://crowdstack.app"

    SUPERADMIN_EMAILS: str = ""

    LOG_LEVEL: str = "INFO"

    def superadmin_emails(self) -> set[str]:
        raw = (self.SUPERADMIN_EMAILS or "").strip()
        if not raw:
            return set()
        return {x.strip().lower() for x in raw.split(",") if x.strip()}

    def cors_origins(self) -> list[str]:
        return [x.strip() for x in self.CORS_ORIGINS.split(",") if x.strip()]


settings = Settings()
