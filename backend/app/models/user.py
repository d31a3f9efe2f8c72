from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint, Index
from sqlalchemy.sql import func
from app.db.base import Base
import uuid


USER_ROLES = ("admin", "trainer", "customer")


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default="customer")  # admin, trainer, customer
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "name": self.name,
        }

    def __repr__(self):
        return f"<User(email='{self.email}', role='{self.role}')>"


class TrainerCustomerRelationship(Base):
    __tablename__ = "trainer_customer_relationships"
    __table_args__ = (
        UniqueConstraint("trainer_id", "customer_id", name="uq_trainer_customer"),
        Index("idx_trainer_customers", "trainer_id", "status"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    trainer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), default="active")  # active, inactive, pending
    relationship_type = Column(String(50), default="primary")  # primary, secondary, consultant
    notes = Column(Text, nullable=True)
    assigned_date = Column(DateTime(timezone=True), server_default=func.now())
