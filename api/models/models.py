from api.config import Base
from sqlalchemy import Column, Integer, String, JSON, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime


class Bot(Base):
    __tablename__ = "bots"
    id = Column(String, primary_key=True, index=True)  # uuid
    owner_id = Column(String, index=True, nullable=True)
    name = Column(String, nullable=False)
    assistant_id = Column(String, nullable=False)  # upstream assistant id
    system_prompt = Column(Text, nullable=True)  # author instructions, may hold {{PROGRESS_PLACEHOLDER}}
    course_map = Column(JSON, nullable=True)  # flat modules or sections with items
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    threads = relationship("Thread", backref="bot", cascade="all, delete-orphan")


class Thread(Base):
    __tablename__ = "threads"
    id = Column(String, primary_key=True, index=True)  # provider thread id
    bot_id = Column(String, ForeignKey("bots.id"), index=True, nullable=False)
    session_id = Column(String, index=True, nullable=False)  # anonymous student session uuid
    title = Column(String, nullable=True)  # first 50 chars of the opening message
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    messages = relationship("Message", backref="thread", cascade="all, delete-orphan")


class Message(Base):
    __tablename__ = "messages"
    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column(String, ForeignKey("threads.id"), index=True, nullable=False)
    role = Column(String, nullable=False)  # user|assistant
    content = Column(Text, nullable=False)
    student_id = Column(String, index=True, nullable=True)  # guest id, for chat privacy
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class StudentProgress(Base):
    __tablename__ = "student_progress"
    __table_args__ = (UniqueConstraint("bot_id", "session_id", name="uq_student_progress_bot_session"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    bot_id = Column(String, ForeignKey("bots.id"), index=True, nullable=False)
    session_id = Column(String, index=True, nullable=False)  # student id
    completed_module_ids = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
