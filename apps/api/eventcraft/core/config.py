"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Database (Supabase Postgres connection string)
    DATABASE_URL: str

    # CORS / frontend
    CORS_ORIGINS: str = "http://localhost:5173"
    FRONTEND_URL: str = "http://localhost:5173"

    # Supabase Auth
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""  # Legacy HS256 secret; JWKS is used when empty
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    SUPABASE_TIMEOUT_SECONDS: float = 10.0

    # Supabase Storage (S3-compatible endpoint)
    STORAGE_BUCKET: str = "uploads"
    STORAGE_S3_ENDPOINT_URL: str = ""  # e.g. https://<ref>.supabase.co/storage/v1/s3
    STORAGE_S3_REGION: str = "us-east-1"
    STORAGE_ACCESS_KEY_ID: str = ""
    STORAGE_SECRET_ACCESS_KEY: str = ""
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Text generation
    AI_PROVIDER: str = "openai"  # openai | azure_openai
    AI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT_SECONDS: float = 60.0
    OPENAI_API_KEY: str = ""
    AZURE_OPENAI_API_KEY: str = ""
    AZURE_OPENAI_ENDPOINT: str = ""
    AZURE_OPENAI_API_VERSION: str = "2025-01-01-preview"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_ID: str = ""
    STRIPE_TIMEOUT_SECONDS: float = 20.0

    # Rate limiting (requests per minute, per client address)
    RATE_LIMIT_API: int = 100
    REDIS_URL: str = ""

    # Error tracking (optional, set in production)
    SENTRY_DSN: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def supabase_auth_url(self) -> str:
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1"

    @property
    def supabase_jwks_url(self) -> str:
        return f"{self.supabase_auth_url}/.well-known/jwks.json"

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    def public_storage_url(self, object_key: str) -> str:
        """Public URL of an object in the uploads bucket."""
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/storage/v1/object/public/{self.STORAGE_BUCKET}/{object_key}"


settings = Settings()
