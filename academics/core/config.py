from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="JSON_LOGS")

    default_curriculum: str = Field("8-4-4", alias="DEFAULT_CURRICULUM")
    default_pass_mark: float = Field(50, alias="DEFAULT_PASS_MARK")
    default_max_score: float = Field(100, alias="DEFAULT_MAX_SCORE")

    # Classical item analysis: compare top and bottom 27% of scorers.
    discrimination_group_fraction: float = Field(0.27, alias="DISCRIMINATION_GROUP_FRACTION")
    discrimination_min_sample: int = Field(8, alias="DISCRIMINATION_MIN_SAMPLE")

    improvement_threshold: float = Field(5, alias="IMPROVEMENT_THRESHOLD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
