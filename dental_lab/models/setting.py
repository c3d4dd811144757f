"""
System setting model (key/value).
"""
from sqlalchemy import Column, String, DateTime, Text
from dental_lab.db.base import Base
from dental_lab.models.user import new_id
from dental_lab.utils.helpers import utcnow


class Setting(Base):
    __tablename__ = "settings"

    id = Column(String(36), primary_key=True, default=new_id)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    description = Column(Text)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Setting(key='{self.key}')>"
