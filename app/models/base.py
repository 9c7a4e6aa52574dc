from uuid import uuid4

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

from app.clock import utcnow

Base = declarative_base()


def generate_id() -> str:
    # hex only, so ids never contain the conversation separator
    return uuid4().hex


class BaseModel(Base):
    __abstract__ = True

    id = Column(String(32), primary_key=True, default=generate_id)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
