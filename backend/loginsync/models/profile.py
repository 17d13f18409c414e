# loginsync/models/profile.py
from sqlalchemy import Column, DateTime, Integer, String, func

from loginsync.core.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)

    # Identity provider `sub`; at most one profile per identity.
    subject = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=True)
    display_name = Column(String(100), nullable=True)
    plan = Column(String(30), nullable=False, server_default="free")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
