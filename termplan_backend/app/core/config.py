from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./termplan.db"
    environment: str = "development"
    log_level: str = "INFO"

    default_academic_system: str = "quarter"
    default_graduation_years: int = 4

    # Used when a catalog is empty or a threshold cannot be derived
    default_min_units: int = 12
    default_target_units: int = 13
    default_max_units: int = 15
    default_target_difficulty: int = 12
    default_max_difficulty: int = 15
    default_top_up_attempts: int = 5

    class Config:
        env_file = ".env"
        env_prefix = "TERMPLAN_"
        extra = "ignore"


settings = Settings()
