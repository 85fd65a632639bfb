from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Export .env into os.environ too; the logger reads LOG_DIR / LOG_LEVEL from there.
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables (and .env)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = "sqlite:///./course_coach.db"

    # LLM provider: "openai" (Assistants threads) or "ollama" (local model)
    llm_provider: str = "openai"
    openai_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen:latest"
    ollama_max_threads: int = 1000  # in-memory threads kept before the oldest is dropped
    default_system_prompt: str = "You are a helpful AI assistant."

    log_level: str = "INFO"
    log_dir: str = "logs"
    cors_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()


def _engine_kwargs(url: str) -> dict:
    # SQLite connections are shared between the request thread and the stream task.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


settings = get_settings()
engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db():
    # Import models so their tables are registered on Base.metadata.
    import api.models.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_session_factory() -> sessionmaker:
    """Session factory for work that outlives the request (e.g. persisting a streamed reply)."""
    return SessionLocal


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
