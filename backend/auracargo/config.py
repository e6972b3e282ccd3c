from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 5432
    db_username: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "auracargo"
    database_url: str | None = None

    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # Anyone registering with this code becomes an admin
    admin_signup_code: str | None = None

    # Pricing: fee = weight (kg) * price_per_kg
    price_per_kg: Decimal = Decimal("1000")
    currency: str = "NGN"

    tracking_prefix: str = "AUR"
    tracking_number_attempts: int = 5

    paystack_secret_key: str | None = None
    paystack_base_url: str = "https://api.paystack.co"
    payment_gateway_timeout_seconds: float = 10.0
    payment_callback_url: str | None = None

    # Pending payment reconciliation job
    payment_reconcile_enabled: bool = False
    payment_reconcile_interval_minutes: int = 30

    realtime_debounce_ms: int = 150

    seed_demo_data: bool = False

    port: int = 8000
    env: str = "development"
    frontend_url: str = "http://localhost:3000"

    model_config = {"env_file": ".env", "extra": "ignore", "env_file_encoding": "utf-8"}

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.db_username}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


settings = Settings()
