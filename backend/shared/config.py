"""
Configuration management for the maxent classifier trainer.
Loads settings from environment variables and provides typed access.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TRAINING_DATA_FORMATS = ("events", "real_events", "doccat")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file="../.env",  # .env is in project root
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    # Application
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # Model storage
    models_dir: str = Field(
        default="backend/models/saved", description="Directory for persisted models"
    )
    model_name: str = Field(default="maxent", description="Name prefix of stored models")
    model_version: str = Field(default="v1", description="Model version")

    # Training data
    training_data_path: Optional[str] = Field(
        default=None, description="Path of the training data file"
    )
    training_data_format: str = Field(
        default="events",
        description="Training data format (events, real_events or doccat)",
    )

    # Training parameters
    training_algorithm: str = Field(default="MAXENT", description="Training algorithm")
    training_iterations: int = Field(default=100, description="Training iterations")
    training_cutoff: Optional[int] = Field(
        default=None, description="Predicate frequency cutoff (unset means 5)"
    )
    training_data_indexer: str = Field(
        default="OnePass", description="Event indexer (OnePass, TwoPass, OnePassRealValue)"
    )
    training_evaluate: bool = Field(
        default=True, description="Evaluate the model on its training data after training"
    )

    # Prediction
    prediction_confidence_threshold: float = Field(
        default=0.5, description="Minimum probability for a confident prediction"
    )

    @field_validator("training_data_format")
    @classmethod
    def check_training_data_format(cls, v: str) -> str:
        """Validate training data format."""
        if v not in TRAINING_DATA_FORMATS:
            raise ValueError(f"Invalid training data format: {v}")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses LRU cache to ensure singleton pattern.
    """
    return Settings()


# Convenience instance for direct import
settings = get_settings()
