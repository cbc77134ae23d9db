"""Global configuration settings."""
from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Deriv feed
    WS_URL: str = "wss://ws.derivws.com/websockets/v3?app_id=1089"
    DEFAULT_SYMBOL: str = "R_75"
    RECONNECT_DELAY_MS: int = 3000
    CONNECT_TIMEOUT_SEC: float = 10.0

    # Tick history
    TICK_HISTORY_SIZE: int = 100
    DISPLAY_TICKS: int = 50

    # Prediction cadence and settlement
    PREDICTION_INTERVAL_MS: int = 15000
    SETTLEMENT_WINDOW_MS: int = 15000
    COUNTDOWN_INTERVAL_MS: int = 1000
    MIN_HISTORY: int = 20

    # Prediction engine weights
    EPSILON: float = 1e-9
    FREQUENCY_WINDOWS: list[int] = [20, 50, 100]
    FREQUENCY_WEIGHTS: list[float] = [0.6, 0.3, 0.1]
    TRANSITION_WINDOW: int = 50
    TRANSITION_WEIGHT: float = 0.25
    HOT_STREAK_COUNT: int = 3
    HOT_STREAK_WINDOW: int = 10
    HOT_BOOST: float = 1.2
    COLD_THRESHOLD: int = 15
    COLD_BOOST: float = 1.1

    # Quote indicators
    RSI_PERIOD: int = 14
    MACD_FAST: int = 12
    MACD_SLOW: int = 26
    MACD_SIGNAL: int = 9
    STOCH_K: int = 14
    STOCH_D: int = 3

    # Stats ledger
    DATABASE_URL: str = "sqlite:///./data/digit_predictor.db"
    STATS_STORAGE_KEY: str = "ph_digit_predictor_stats"
    STATS_LOG_SIZE: int = 100
    RECENT_SETTLEMENTS: int = 20

    # API Settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    DEBUG: bool = False  # Enable debug mode for detailed error messages
    LOG_LEVEL: str = "INFO"

    # CORS Settings - add production domains here
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",  # Vite default dev server
        "http://localhost:3000",  # Common React dev server
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

    @model_validator(mode="after")
    def check_engine_constants(self) -> "Settings":
        if len(self.FREQUENCY_WINDOWS) != len(self.FREQUENCY_WEIGHTS):
            raise ValueError("FREQUENCY_WINDOWS and FREQUENCY_WEIGHTS must have the same length")
        if abs(sum(self.FREQUENCY_WEIGHTS) - 1.0) > 1e-6:
            raise ValueError("FREQUENCY_WEIGHTS must sum to 1")
        if self.HOT_BOOST <= 1.0 or self.COLD_BOOST <= 1.0:
            raise ValueError("HOT_BOOST and COLD_BOOST must be greater than 1")
        if self.EPSILON <= 0:
            raise ValueError("EPSILON must be positive")
        if self.MIN_HISTORY < 2:
            raise ValueError("MIN_HISTORY must be at least 2")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()
