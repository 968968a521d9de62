from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 5432
    db_username: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "fruitflow"
    database_url: str | None = None

    llm_provider: str = "anthropic"
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None

    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 60.0

    # Seeded manager account
    default_manager_username: str = "Nhom1"
    default_manager_password: str = "123"

    # Simulated escrow payments
    eth_price_api_url: str = (
        "https://api.coingecko.com/api/v3/simple/price?ids=ethereum&vs_currencies=usd"
    )
    payment_recipient_address: str = "0x83491285C0aC3dd64255A5D68f0C3e919A5Eacf2"
    fallback_eth_usd_price: float = 2000.0
    payment_confirmation_delay_seconds: float = 4.0
    wallet_rpc_url: str | None = None

    # Transporter fare
    base_fare: float = 2.00
    rate_per_km: float = 0.50

    # Platform health-check agent
    health_check_enabled: bool = False
    health_check_interval_minutes: int = 60

    # Demo partners and catalogue for local development
    seed_demo_data: bool = False

    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

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
