"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root and src to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Settings are read at import time of api.config; keep tests off the real DB and provider.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LLM_PROVIDER"] = "ollama"
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "course_coach_test_logs"))


# ----- Curriculum data -----
@pytest.fixture
def hierarchical_map():
    """Two-phase course map in its stored JSON shape."""
    return [
        {
            "id": "phase-1",
            "title": "Phase 1",
            "items": [
                {"id": "phase-1/intro", "title": "Intro", "type": "file", "file_id": "file-abc"},
                {"id": "phase-1/setup", "title": "Setup", "type": "video",
                 "external_url": "https://example.com/v", "context_file_id": "file_0_setup_notes.pdf"},
            ],
        },
        {
            "id": "phase-2",
            "title": "Phase 2",
            "items": [
                {"id": "phase-2/a", "title": "A", "type": "quiz"},
                {"id": "phase-2/b", "title": "B", "type": "file"},
                {"id": "phase-2/c", "title": "C", "type": "link", "external_url": "https://example.com"},
                {"id": "phase-2/d", "title": "D", "type": "file"},
            ],
        },
    ]


@pytest.fixture
def flat_map():
    return [
        {"id": "m1", "title": "Module 1"},
        {"id": "m2", "title": "Module 2"},
        {"id": "m3", "title": "Module 3"},
    ]


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """In-memory SQLite engine shared by every session (StaticPool keeps one connection)."""
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def session_factory(in_memory_engine):
    from api.config import Base
    import api.models.models  # noqa: F401

    Base.metadata.create_all(in_memory_engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)


@pytest.fixture
def db_session(session_factory):
    """Create an in-memory database session. Uses api.config.Base for schema."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def test_bot(db_session, hierarchical_map):
    """Create a test bot in the DB."""
    from api.models.models import Bot
    bot = Bot(
        id="bot-123",
        owner_id="owner-1",
        name="Funnel Coach",
        assistant_id="asst_123",
        system_prompt="You are a coach.\n\n{{PROGRESS_PLACEHOLDER}}",
        course_map=hierarchical_map,
    )
    db_session.add(bot)
    db_session.commit()
    db_session.refresh(bot)
    return bot
