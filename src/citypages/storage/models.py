"""SQLAlchemy ORM models for cities and research jobs."""

import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class CityRecord(Base):
    """A city that landing pages can be generated for."""

    __tablename__ = "cities"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    city = Column(String(200), nullable=False)
    state_code = Column(String(8), nullable=False)


class ResearchJobRecord(Base):
    """One content generation run for a city, polled by the dashboard."""

    __tablename__ = "research_jobs"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    city_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="processing")
    progress = Column(Integer, nullable=False, default=0)
    current_step = Column(Text)
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    error_message = Column(Text)
    results_json = Column(JSON, default=dict)


TABLES: dict[str, type[Base]] = {
    CityRecord.__tablename__: CityRecord,
    ResearchJobRecord.__tablename__: ResearchJobRecord,
}
