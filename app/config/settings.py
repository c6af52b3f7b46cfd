from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import PostgresDsn

class Settings(BaseSettings):
    # API Settings
    API_V1_STR: str = "/api"
    PROJECT_NAME: str = "Career Coach Service"
    VERSION: str = "1.0.0"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "career_coach"
    DATABASE_URL: Optional[str] = None

    @property
    def get_database_uri(self) -> str:
        """Get async database URI, DATABASE_URL wins over the POSTGRES_* parts"""
        if not self.DATABASE_URL:
            self.DATABASE_URL = str(PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            ))
        return self.DATABASE_URL

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: Optional[str] = None
    CHAT_MODEL: str = "gpt-4o-mini"
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 1000
    EXTRACTION_MODEL: str = "gpt-4o-mini"
    EXTRACTION_TEMPERATURE: float = 0.3
    LLM_TIMEOUT: float = 60.0

    # Context selection
    CONTEXT_FETCH_LIMIT: int = 50  # rows pulled per entity type before scoring
    MEMORY_CONVERSATION_LIMIT: int = 20
    CONVERSATION_HISTORY_TURNS: int = 10

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]  # Change in production

    class Config:
        case_sensitive = True
        env_file = ".env"

# Create settings instance
settings = Settings()
