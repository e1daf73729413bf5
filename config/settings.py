"""Runtime configuration for the intent settlement engine."""

from pydantic_settings import BaseSettings


DEFAULT_PRICE_TABLE = (
    '{"STTEST.token-a::STTEST.token-b": "98/100",'
    ' "STTEST.token-b::STTEST.token-a": "101/100"}'
)


class Settings(BaseSettings):
    # === Ledger ===
    LEDGER_MODE: str = "reference"  # "reference" (in-memory) or "remote"
    LEDGER_API_URL: str = "http://localhost:3999"
    LEDGER_API_TOKEN: str = ""  # bearer token for the signing gateway
    LEDGER_CONTRACT_ID: str = ""  # <address>.<contract-name>
    LEDGER_TIMEOUT_SECONDS: float = 10.0
    LEDGER_READ_RETRIES: int = 3
    SEED_DEMO_INTENTS: bool = True

    # === Solver ===
    SOLVER_ID: str = "STSOLVERREF0000000000000000000000000"
    SOLVER_ROUTE_ID: str = "internal-amm-v1"
    POLL_INTERVAL_SECONDS: float = 10.0
    PAGE_SIZE: int = 10
    MAX_PAGES: int = 20

    # === Pricing ===
    # JSON object: {"<tokenIn>::<tokenOut>": "<numerator>/<denominator>"}
    PRICE_TABLE: str = DEFAULT_PRICE_TABLE

    # === Logging ===
    LOG_LEVEL: str = "INFO"

    # === Settlement API ===
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8787
    DEFAULT_CREATOR: str = "STDEMOUSER"

    model_config = {"env_file": ".env"}


settings = Settings()
