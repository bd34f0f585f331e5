from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PREFIX = "pdns"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PDNS_METRICS_")

    prefix: str = Field(DEFAULT_PREFIX, description="Metric key prefix.")
    control_command: str = Field(
        "/usr/bin/pdns_control", description="Path to the pdns_control command."
    )
    database_url: str = Field(
        "sqlite+aiosqlite:///./data/pdns_metrics.db",
        description="SQLAlchemy database URL holding previous counter samples.",
    )
    sqlalchemy_echo: bool = Field(False, description="Enable SQL echo logging.")
    sample_interval_seconds: int = Field(
        60, description="How frequently the API server snapshots counters."
    )
    history_points_limit: int = Field(
        120, description="Number of historical samples to return per metric."
    )
    history_retention_seconds: int = Field(
        86400, description="Samples older than this are pruned after each cycle."
    )
    diff_max_interval_seconds: int = Field(
        600, description="Diff metrics are skipped when the previous sample is older."
    )
    report_dropped: bool = Field(
        False, description="Log how many malformed counter entries were dropped."
    )
    host: str = Field("127.0.0.1", description="Bind address for the HTTP API.")
    port: int = Field(8053, description="Port for the HTTP API.")

    @field_validator("prefix")
    def default_empty_prefix(cls, value: str) -> str:
        return value or DEFAULT_PREFIX
