# stockroom/db/schema.py
from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class KeyValueEntry(Base):
    """Plain key holding a JSON document or a bare id string."""
    __tablename__ = 'kv_entry'

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class KeyValueSetMember(Base):
    """One member of a set-typed key. ``id`` preserves insertion order."""
    __tablename__ = 'kv_set_member'

    id = Column(Integer, primary_key=True, autoincrement=True)
    set_key = Column(String(512), nullable=False, index=True)
    member = Column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint('set_key', 'member', name='uq_kv_set_member'),
    )
