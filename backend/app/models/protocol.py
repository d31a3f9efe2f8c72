from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Boolean, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base
import uuid


PROTOCOL_TYPES = ("longevity", "parasite_cleanse")
INTENSITIES = ("gentle", "moderate", "intensive")
ASSIGNMENT_STATUSES = ("active", "completed", "paused", "cancelled")


class TrainerHealthProtocol(Base):
    __tablename__ = "trainer_health_protocols"
    __table_args__ = (
        Index("trainer_health_protocols_trainer_id_idx", "trainer_id"),
        Index("trainer_health_protocols_type_idx", "type"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(50), nullable=False)  # longevity, parasite_cleanse
    duration = Column(Integer, nullable=False)  # days
    intensity = Column(String(20), nullable=False)  # gentle, moderate, intensive
    config = Column(JSON, nullable=False)  # phases, supplements, health profile
    is_template = Column(Boolean, default=False)
    tags = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    assignments = relationship("ProtocolAssignment", back_populates="protocol", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "trainerId": self.trainer_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "duration": self.duration,
            "intensity": self.intensity,
            "config": self.config,
            "isTemplate": bool(self.is_template),
            "tags": self.tags or [],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class ProtocolAssignment(Base):
    __tablename__ = "protocol_assignments"
    __table_args__ = (
        Index("protocol_assignments_protocol_id_idx", "protocol_id"),
        Index("protocol_assignments_customer_id_idx", "customer_id"),
        Index("protocol_assignments_trainer_id_idx", "trainer_id"),
        Index("protocol_assignments_status_idx", "status"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    protocol_id = Column(String, ForeignKey("trainer_health_protocols.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    trainer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default="active")  # active, completed, paused, cancelled
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)  # start_date + protocol duration
    completed_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    progress_data = Column(JSON, default=dict)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    protocol = relationship("TrainerHealthProtocol", back_populates="assignments")

    def to_dict(self):
        return {
            "id": self.id,
            "protocolId": self.protocol_id,
            "customerId": self.customer_id,
            "trainerId": self.trainer_id,
            "status": self.status,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "completedDate": self.completed_date.isoformat() if self.completed_date else None,
            "notes": self.notes,
            "progressData": self.progress_data or {},
            "assignedAt": self.assigned_at.isoformat() if self.assigned_at else None,
        }
