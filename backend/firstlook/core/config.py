"""
Centralized configuration management.

Application settings are loaded from the environment and validated here.
Every heuristic threshold used by the profiling pipeline lives in the
``Thresholds`` table so tuning happens in one place.
"""
import os
import logging
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Application settings with validation."""

    # Request payload limits
    max_rows: int = Field(default=200000, ge=100, le=5000000, description="Maximum rows per analysis request")
    max_columns: int = Field(default=500, ge=10, le=10000, description="Maximum columns per analysis request")
    max_question_length: int = Field(default=500, ge=20, le=5000, description="Maximum question length in characters")

    # Rate limiting
    rate_limit_per_minute: int = Field(default=30, ge=1, le=1000, description="Rate limit per minute per IP")

    # Request timeout
    request_timeout_seconds: int = Field(default=120, ge=1, le=3600, description="Request timeout in seconds")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Comma-separated list of allowed CORS origins"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got '{v}'")
        return v.upper()

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            max_rows=int(os.getenv("MAX_ROWS", "200000")),
            max_columns=int(os.getenv("MAX_COLUMNS", "500")),
            max_question_length=int(os.getenv("MAX_QUESTION_LENGTH", "500")),
            rate_limit_per_minute=int(os.getenv("RATE_LIMIT_PER_MINUTE", "30")),
            request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "120")),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


class Thresholds(BaseModel):
    """
    Heuristic thresholds for type inference, KPIs, charts and insights.

    Ratios are fractions in [0, 1] unless the name ends in ``_pct``, in which
    case they are percentages of the non-missing count.
    """
    model_config = ConfigDict(frozen=True)

    # Sampling
    sample_size: int = 250

    # Content-based identifier detection
    id_min_values: int = 20
    id_uniqueness_ratio: float = 0.9
    id_numeric_guard: float = 0.85
    id_date_guard: float = 0.85
    id_token_ratio: float = 0.6
    id_max_avg_length: float = 24
    id_long_token_ratio: float = 0.6
    id_long_token_length: int = 6

    # First-pass type inference
    infer_numeric_ratio: float = 0.8
    infer_date_ratio: float = 0.8
    text_min_avg_length: float = 30

    # Profile type decision
    profile_numeric_ratio: float = 0.85
    profile_date_ratio: float = 0.85
    profile_hint_ratio: float = 0.7

    # Numeric identifier detection (sequential / index-like)
    numeric_id_min_values: int = 30
    numeric_id_uniqueness: float = 0.98
    numeric_id_integer_ratio: float = 0.98
    numeric_id_integer_sample: int = 500
    numeric_id_max_steps: int = 400
    numeric_id_monotonic_ratio: float = 0.98
    numeric_id_sequence_ratio: float = 0.85
    # Tunable: a densely packed bounded measure can also satisfy this.
    index_like_range_factor: float = 1.2

    # Identifier-like / name-list predicates used by KPIs and charts
    like_id_min_unique: int = 20
    like_id_uniqueness: float = 0.98
    categorical_id_uniqueness: float = 0.9
    name_list_min_unique: int = 50
    name_list_uniqueness: float = 0.5
    name_list_max_top_pct: float = 40

    # Profile
    top_values: int = 8

    # KPIs
    max_kpis: int = 6
    kpi_min_numeric_values: int = 25
    kpi_numeric_candidates: int = 5
    kpi_small_cardinality: int = 12
    kpi_medium_cardinality: int = 25
    kpi_sparse_uniqueness: float = 0.4

    # Charts
    min_histogram_values: int = 12
    min_box_values: int = 12
    max_box_outliers: int = 200
    max_bars: int = 10
    min_time_pairs: int = 20
    min_time_points: int = 8
    day_granularity_max_days: int = 90
    min_scatter_pairs: int = 30
    max_scatter_points: int = 1200
    min_pearson_values: int = 8
    min_correlation_columns: int = 4
    max_correlation_columns: int = 10
    min_correlation_rows: int = 40
    fallback_min_seen: int = 15
    fallback_date_ratio: float = 0.7
    fallback_numeric_ratio: float = 0.85
    min_charts: int = 4
    max_charts: int = 8
    purpose_caps: dict = Field(default_factory=lambda: {
        "distribution": 2,
        "composition": 2,
        "trend": 2,
        "relationship": 2,
    })
    type_caps: dict = Field(default_factory=lambda: {
        "histogram": 2,
        "bar": 2,
        "time": 2,
        "scatter": 1,
        "box": 1,
        "correlation": 1,
    })

    # Insights
    max_insights: int = 6
    max_listed_columns: int = 4
    missing_info_pct: float = 25
    missing_warning_pct: float = 40
    outlier_max_mean_ratio: float = 3
    skew_mean_median_ratio: float = 1.1
    max_outlier_insights: int = 2
    dominance_pct: float = 70
    trend_min_unique_dates: int = 30

    # Query engine
    notable_correlation: float = 0.5


DEFAULT_THRESHOLDS = Thresholds()


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info("Configuration loaded and validated successfully")
    return _settings


def reload_settings() -> Settings:
    """Reload settings (useful for testing)."""
    global _settings
    _settings = None
    return get_settings()
