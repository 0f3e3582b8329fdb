from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str

    # If DEV and you hit SSL cert issues on Windows, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str
    # Admin (escalated) tokens are signed separately; falls back to SECRET_KEY
    ADMIN_TOKEN_SECRET: str | None = None

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 15

    PASSWORD_HASH_ROUNDS: int = 12

    # --- ROLE ENGINE ---
    MAX_DEPARTMENT_DEPTH: int = 32
    MASTER_DEPARTMENT_ID: int = 1
    MASTER_DEPARTMENT_NAME: str = "System Administration"

    # --- RATE LIMITING / SESSION REGISTRY ---
    REDIS_URL: str | None = None
    RATE_LIMIT_ENABLED: bool = True

    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_ESCALATION_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "Super Admin"
    ENV: str = "dev"  # "dev" or "prod"

    FRONTEND_URL: str = "http://localhost:5173"

    @property
    def admin_token_secret(self) -> str:
        return self.ADMIN_TOKEN_SECRET or self.SECRET_KEY

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
