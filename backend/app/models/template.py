from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Boolean, JSON
from sqlalchemy.sql import func
from app.db.base import Base
import uuid


class ProtocolTemplate(Base):
    __tablename__ = "protocol_templates"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")
    category = Column(String(100), nullable=False, index=True)
    protocol_type = Column(String(50), nullable=False, default="longevity")
    content = Column(JSON, nullable=False, default=dict)  # phases, supplements, lifestyle
    tags = Column(JSON, default=list)
    popularity = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "category": self.category,
            "protocolType": self.protocol_type,
            "content": self.content or {},
            "tags": self.tags or [],
            "popularity": self.popularity or 0,
            "isActive": bool(self.is_active),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
