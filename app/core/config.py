from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaymentConfig(BaseModel):
    """Explicit settings handed to the payment service; no process-wide API key."""
    secret_key: str = ""
    currency: str = "usd"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Table Reservation API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "reservations_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Payments (Stripe). Empty key = mock mode.
    STRIPE_SECRET_KEY: str = ""
    PAYMENT_CURRENCY: str = "usd"

    # Booking QR codes
    QR_CODE_DIR: str = "uploads/qrcodes"
    QR_CODE_URL_PREFIX: str = "/uploads/qrcodes"

    # Booking rules
    BOOKING_REFERENCE_PREFIX: str = "BR"
    DEFAULT_BOOKING_DURATION_MINUTES: int = 90
    AVAILABILITY_WINDOW_MINUTES: int = 90
    MAX_CALENDAR_DAYS: int = 62

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def payment(self) -> PaymentConfig:
        return PaymentConfig(secret_key=self.STRIPE_SECRET_KEY, currency=self.PAYMENT_CURRENCY)


settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
