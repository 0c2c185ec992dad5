from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str

    ENV: str = "dev"  # "dev" or "prod"

    # --- OBJECT STORAGE (Supabase Storage bucket) ---
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    STORAGE_BUCKET: str = "submissions"
    SUBMISSION_PATH_PREFIX: str = "soumissions/pdf/"
    SIGNED_URL_TTL_MINUTES: int = 10080  # 7 days, the maximum a signed URL may live
    MAX_UPLOAD_SIZE_MB: int = 50

    # --- DOWNSTREAM SERVICES ---
    CONTENT_SERVICE_URL: str = "http://galileo-lecture:8081"
    CONTENT_SERVICE_TIMEOUT: float = 10.0
    NOTIFICATION_SERVICE_URL: str | None = None
    NOTIFICATION_SERVICE_TIMEOUT: float = 5.0

    # --- RATE LIMITING ---
    REDIS_URL: str | None = None
    SUBMISSION_RATE_LIMIT: str = "10/minute"

    # --- EMAIL SETTINGS ---
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 2525  # Default to Mailtrap port
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str = "no-reply@galileo.edu"
    EMAILS_FROM_NAME: str = "Galileo"
    FRONTEND_URL: str = "http://localhost:5173"

    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
