from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "DeckMender"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/deckmender"

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    needs_max_tokens: int = 1000
    suggestions_max_tokens: int = 4096

    scryfall_api_url: str = "https://api.scryfall.com"
    scryfall_user_agent: str = "DeckMender/1.0"
    # Scryfall asks for at most 10 requests/second; stay at 8
    scryfall_request_delay: float = 0.125
    scryfall_timeout: float = 30.0


settings = Settings()


# =============================================================================
# CANDIDATE LIMITS
# =============================================================================

# Ranked candidates handed to the analysis step (highest scores kept)
MAX_CANDIDATES = 100

# Partner commanders: at most two cards head a deck
MAX_COMMANDERS = 2

# Scryfall /cards/collection accepts at most 75 identifiers per request
SCRYFALL_BATCH_SIZE = 75

# In-process metrics keep only the most recent records
METRICS_HISTORY_SIZE = 1000
