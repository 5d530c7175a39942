# Settings management (reads env vars/.env)
# mflix_api/core/config.py

import logging
from functools import lru_cache
from typing import List, Literal, Optional, Union

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables or .env file.
    """
    # --- Project Info ---
    PROJECT_NAME: str = Field("MFlix Movies API", validation_alias="PROJECT_NAME")
    VERSION: str = Field("1.0.0", validation_alias="APP_VERSION")
    API_PREFIX: str = Field("/api", validation_alias="API_PREFIX")
    ENVIRONMENT: Literal["development", "production", "test"] = Field(
        "development", validation_alias="ENVIRONMENT"
    )
    PORT: int = Field(3001, validation_alias="PORT")

    # --- Logging ---
    # Unset means "derive from ENVIRONMENT" (see core/logging.py)
    LOG_LEVEL: Optional[str] = Field(None, validation_alias="LOG_LEVEL")

    # --- Database (MongoDB) ---
    # Use SecretStr to prevent accidental logging of the URI
    MONGODB_URI: Optional[SecretStr] = Field(None, validation_alias="MONGODB_URI")
    MONGODB_DB_NAME: str = Field("sample_mflix", validation_alias="MONGODB_DB_NAME")
    MONGODB_APP_NAME: str = Field("sample-app-python-mflix", validation_alias="MONGODB_APP_NAME")

    # --- Search indexes (Atlas Search / Vector Search) ---
    SEARCH_INDEX_NAME: str = Field("movieSearchIndex", validation_alias="SEARCH_INDEX_NAME")
    VECTOR_INDEX_NAME: str = Field("vector_index", validation_alias="VECTOR_INDEX_NAME")
    VECTOR_EMBEDDING_PATH: str = Field(
        "plot_embedding_voyage_3_large", validation_alias="VECTOR_EMBEDDING_PATH"
    )

    # --- Embeddings (Voyage AI) ---
    VOYAGE_API_KEY: Optional[SecretStr] = Field(None, validation_alias="VOYAGE_API_KEY")
    VOYAGE_API_URL: str = Field(
        "https://api.voyageai.com/v1/embeddings", validation_alias="VOYAGE_API_URL"
    )
    VOYAGE_MODEL: str = Field("voyage-3-large", validation_alias="VOYAGE_MODEL")
    # Must match the dimension of the vector index
    VOYAGE_OUTPUT_DIMENSION: int = Field(2048, validation_alias="VOYAGE_OUTPUT_DIMENSION")

    # --- CORS ---
    # Expects a comma-separated string in env var like "http://localhost:3000,https://example.com"
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        validation_alias="BACKEND_CORS_ORIGINS"
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(f"Invalid BACKEND_CORS_ORIGINS format: {v}")

    @property
    def voyage_configured(self) -> bool:
        return bool(self.VOYAGE_API_KEY and self.VOYAGE_API_KEY.get_secret_value().strip())

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )


# Use lru_cache to create a singleton instance of the settings
@lru_cache()
def get_settings() -> Settings:
    """Returns the application settings instance."""
    try:
        settings_instance = Settings()
    except Exception as e:
        logger.critical(f"Failed to load application settings: {e}", exc_info=True)
        raise RuntimeError(f"Could not load settings: {e}")
    logger.debug(f"Settings loaded for project: {settings_instance.PROJECT_NAME} ({settings_instance.ENVIRONMENT})")
    return settings_instance


# Create a single settings instance to be imported by other modules
settings: Settings = get_settings()
