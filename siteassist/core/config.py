"""
Service Configuration
Environment-driven settings for ingestion, retrieval and key gating
"""
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Production-grade configuration with environment variable loading.
    All sensitive values loaded from environment, never hardcoded.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    APP_NAME: str = "SiteAssist"
    APP_ENV: str = Field(default="development", pattern="^(development|staging|production)$")
    DEBUG: bool = False
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Database (key registry persistence)
    DATABASE_URL: str = "sqlite:///./siteassist.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 40
    DB_ECHO: bool = False
    KEY_STORE_BACKEND: str = Field(default="memory", pattern="^(memory|database)$")

    # Pinecone Vector Database
    # A missing key is not an error: the vector store starts in fallback mode.
    PINECONE_API_KEY: Optional[str] = None
    PINECONE_INDEX_NAME: str = "siteassist"
    PINECONE_DIMENSION: int = 1024
    PINECONE_METRIC: str = Field(default="cosine", pattern="^(cosine|euclidean|dotproduct)$")
    PINECONE_CLOUD: str = "aws"
    PINECONE_REGION: str = "us-east-1"
    PINECONE_READY_TIMEOUT_SECONDS: float = 60.0
    PINECONE_READY_POLL_SECONDS: float = 2.0
    PINECONE_UPSERT_BATCH_SIZE: int = 100

    # Embeddings
    EMBEDDING_PROVIDER: str = Field(default="gemini", pattern="^(gemini|openai)$")
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_EMBEDDING_MODEL: str = "models/gemini-embedding-001"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_CALLS_PER_SECOND: float = 10.0
    EMBEDDING_BURST: int = 1
    EMBEDDING_MAX_CHARS: int = 8000
    EMBEDDING_MIN_CHARS: int = 10

    # Chunking
    CHUNK_MAX_WORDS: int = 1000
    CHUNK_OVERLAP_WORDS: int = 100
    CHUNK_MIN_CHARS: int = 50
    STORE_CHUNK_MAX_WORDS: int = 800
    STORE_CHUNK_OVERLAP_WORDS: int = 100

    # Ingestion
    INGEST_MIN_TEXT_CHARS: int = 20
    VECTOR_TEXT_MAX_CHARS: int = 8000
    ORIGINAL_CONTENT_MAX_CHARS: int = 1000
    FETCH_TIMEOUT_SECONDS: float = 30.0
    FETCH_MAX_PAGES: int = 10
    FETCH_BATCH_MAX_URLS: int = 50

    # API keys
    KEY_DEFAULT_RATE_LIMIT: int = 1000  # requests per hour
    KEY_USAGE_LOG_LIMIT: int = 1000
    KEY_PROJECT_PREFIX: str = "learn"
    KEY_STANDALONE_PREFIX: str = "ai_assist"

    # Retrieval
    RETRIEVAL_MAIN_TOP_K: int = 5
    RETRIEVAL_MAIN_THRESHOLD: float = 0.6
    RETRIEVAL_INTERACTIVE_TOP_K: int = 3
    RETRIEVAL_INTERACTIVE_THRESHOLD: float = 0.5

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"]
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.APP_ENV == "production"

    def get_namespace(self, project_id: str, content_type: str) -> str:
        """
        Vector namespace for one project's content type.
        Format: {project_id}_{content_type}
        """
        return f"{project_id}_{content_type}"

    def get_database_url(self, async_driver: bool = True) -> str:
        """
        Get database URL with appropriate driver.

        Args:
            async_driver: If True, returns async driver URL. If False, returns sync driver URL.
        """
        url = self.DATABASE_URL

        if async_driver:
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgresql+psycopg2://"):
                url = url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
            elif url.startswith("sqlite:///"):
                url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        else:
            # Alembic runs with sync drivers
            if url.startswith("postgresql+asyncpg://"):
                url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
            elif url.startswith("sqlite+aiosqlite:///"):
                url = url.replace("sqlite+aiosqlite:///", "sqlite:///", 1)

        return url


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.
    Use this function throughout the application to access configuration.
    """
    return Settings()
