from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    LOG_LEVEL: str = "INFO"

    # --- Minimal auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Source registry ---
    # JSON list of source records; the built-in catalog is used when unset
    SOURCES_FILE: str | None = None

    # --- Scraper pacing ---
    SCRAPER_MAX_PAGES: int = 5
    SCRAPER_TIMEOUT_S: float = 120.0  # per source, wall clock
    SCRAPER_PAGE_DELAY_S: float = 1.5  # on top of the rate limiter

    # --- Static fetch ---
    HTTP_TIMEOUT_S: float = 30.0
    HTTP_MAX_RETRIES: int = 2
    HTTP_BACKOFF_BASE_S: float = 0.5
    # one is picked at random per request and per browser session
    HTTP_USER_AGENTS: list[str] = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ]
    HTTP_ACCEPT_LANGUAGE: str = "es-CO,es;q=0.9,en;q=0.8"
    HTTP_VERIFY_SSL: bool = True
    # Optional: custom CA bundle path (corporate proxies)
    HTTP_CA_BUNDLE: str | None = None

    # --- Rendered-browser escalation ---
    BROWSER_ENABLED: bool = True
    BROWSER_TIMEOUT_S: float = 60.0
    BROWSER_SCROLL_STEPS: int = 7
    BROWSER_SCROLL_PX: int = 1200
    BROWSER_SCROLL_PAUSE_S: float = 0.3

    # --- Search defaults ---
    DEFAULT_CITY: str = "Bogotá"
    DEFAULT_OPERATION: str = "arriendo"
    DEFAULT_PROPERTY_TYPE: str = "apartamento"
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 500

    # --- Quality gate ---
    QUALITY_MIN_TITLE_LEN: int = 5
    QUALITY_MAX_ROOMS: int = 20
    QUALITY_MAX_AREA_M2: float = 10000.0

    # --- Scoring ---
    MARKET_PRICE_PER_M2: float = 35000.0  # COP / m2 / month


settings = Settings()
