from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'invoicehub_user'
    POSTGRES_PASSWORD: str = 'invoicehub_pass'
    POSTGRES_DB: str = 'invoicehub_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    # Full URL override (sqlite:// for tests)
    DATABASE_URL: Optional[str] = None

    # JWT settings
    APP_SECRET_STRING: str = 'change-this-secret-key-in-production'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    BCRYPT_ROUNDS: int = 12

    # Portal access
    PORTAL_PASSWORD_LENGTH: int = 12

    # Pagination
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 500

    # Business defaults
    DEFAULT_DUE_DAYS: int = 30
    DEFAULT_PAYMENT_METHOD: str = 'Bank Transfer'
    INVOICE_PREFIX: str = 'INV'
    CLIENT_CODE_PREFIX: str = 'CLT'

    # Invoice branding (PDF header)
    COMPANY_NAME: str = 'InvoiceHub'
    COMPANY_ADDRESS: str = ''
    COMPANY_EMAIL: str = ''
    COMPANY_PHONE: str = ''
    COMPANY_TAX_ID: str = ''
    CURRENCY_SYMBOL: str = '$'

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
