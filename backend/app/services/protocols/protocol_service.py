"""
Health Protocol Service

Persistence operations for trainer health protocols and their customer
assignments. At most one *active* assignment exists per
(trainer, customer, protocol); assigning again returns the existing row.
"""

from typing import Dict, List, Any, Optional, Tuple
from datetime import datetime, timedelta, timezone
import logging
from sqlalchemy.orm import Session

from app.models.protocol import TrainerHealthProtocol, ProtocolAssignment
from app.models.user import User, TrainerCustomerRelationship
from app.services.protocols.schemas import CreateHealthProtocol, UpdateHealthProtocol

logger = logging.getLogger(__name__)


class ProtocolNotFound(LookupError):
    pass


class InvalidAssignment(ValueError):
    pass


class ProtocolService:
    """CRUD and assignment logic for trainer_health_protocols"""

    def __init__(self, db: Session):
        self.db = db

    def create_protocol(
        self, trainer_id: str, data: CreateHealthProtocol
    ) -> Tuple[TrainerHealthProtocol, Optional[ProtocolAssignment]]:
        """Persist a protocol and, when a target customer is given, its assignment"""
        customer = None
        if data.target_customer_id:
            customer = self._get_customer(data.target_customer_id)

        protocol = TrainerHealthProtocol(
            trainer_id=trainer_id,
            name=data.name,
            description=data.description,
            type=data.type,
            duration=data.duration,
            intensity=data.intensity,
            config=data.config,
            tags=list(data.tags),
        )
        try:
            self.db.add(protocol)
            self.db.flush()
            assignment = None
            if customer is not None:
                assignment = self._assign_one(protocol, trainer_id, customer.id, notes=None, start_date=None)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(protocol)
        if assignment is not None:
            self.db.refresh(assignment)
        logger.info(
            f"Trainer {trainer_id} created protocol {protocol.id} "
            f"({protocol.type}, {protocol.duration}d)"
            + (f" assigned to {customer.id}" if customer is not None else "")
        )
        return protocol, assignment

    def list_protocols(self, trainer_id: str) -> List[Dict[str, Any]]:
        protocols = (
            self.db.query(TrainerHealthProtocol)
            .filter(TrainerHealthProtocol.trainer_id == trainer_id)
            .order_by(TrainerHealthProtocol.created_at.desc())
            .all()
        )
        results = []
        for protocol in protocols:
            data = protocol.to_dict()
            data["totalAssignments"] = len(protocol.assignments)
            data["activeAssignments"] = sum(1 for a in protocol.assignments if a.status == "active")
            results.append(data)
        return results

    def get_owned(self, protocol_id: str, trainer_id: str) -> TrainerHealthProtocol:
        protocol = self.db.query(TrainerHealthProtocol).filter(TrainerHealthProtocol.id == protocol_id).first()
        if not protocol or protocol.trainer_id != trainer_id:
            raise ProtocolNotFound("Protocol not found or access denied")
        return protocol

    def update_protocol(self, protocol: TrainerHealthProtocol, updates: UpdateHealthProtocol) -> TrainerHealthProtocol:
        for field, value in updates.model_dump(exclude_unset=True).items():
            setattr(protocol, field, value)
        self.db.commit()
        self.db.refresh(protocol)
        return protocol

    def delete_protocol(self, protocol: TrainerHealthProtocol) -> None:
        self.db.delete(protocol)
        self.db.commit()
        logger.info(f"Deleted protocol {protocol.id}")

    def assign(
        self,
        protocol: TrainerHealthProtocol,
        trainer_id: str,
        client_ids: List[str],
        notes: Optional[str] = None,
        start_date: Optional[datetime] = None,
    ) -> List[ProtocolAssignment]:
        customers = [self._get_customer(cid) for cid in dict.fromkeys(client_ids)]
        try:
            assignments = [
                self._assign_one(protocol, trainer_id, c.id, notes=notes, start_date=start_date)
                for c in customers
            ]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        for a in assignments:
            self.db.refresh(a)
        return assignments

    def list_assignments(self, trainer_id: str) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(ProtocolAssignment, TrainerHealthProtocol, User)
            .join(TrainerHealthProtocol, TrainerHealthProtocol.id == ProtocolAssignment.protocol_id)
            .join(User, User.id == ProtocolAssignment.customer_id)
            .filter(ProtocolAssignment.trainer_id == trainer_id)
            .order_by(ProtocolAssignment.assigned_at.desc())
            .all()
        )
        results = []
        for assignment, protocol, customer in rows:
            data = assignment.to_dict()
            data["protocol"] = {"id": protocol.id, "name": protocol.name, "type": protocol.type}
            data["customer"] = {"id": customer.id, "email": customer.email, "name": customer.name}
            results.append(data)
        return results

    def update_assignment_status(
        self, assignment_id: str, trainer_id: str, status: str, notes: Optional[str] = None
    ) -> ProtocolAssignment:
        assignment = self.db.query(ProtocolAssignment).filter(ProtocolAssignment.id == assignment_id).first()
        if not assignment or assignment.trainer_id != trainer_id:
            raise ProtocolNotFound("Assignment not found or access denied")
        if status == "active" and assignment.status != "active":
            duplicate = self._active_assignment(assignment.trainer_id, assignment.customer_id, assignment.protocol_id)
            if duplicate is not None:
                raise InvalidAssignment("Customer already has an active assignment for this protocol")
        assignment.status = status
        if status == "completed":
            assignment.completed_date = datetime.now(timezone.utc)
        if notes is not None:
            assignment.notes = notes
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    # ----- helpers -----

    def _get_customer(self, customer_id: str) -> User:
        customer = self.db.query(User).filter(User.id == customer_id).first()
        if not customer or customer.role != "customer":
            raise InvalidAssignment(f"Customer {customer_id} not found")
        return customer

    def _active_assignment(self, trainer_id: str, customer_id: str, protocol_id: str) -> Optional[ProtocolAssignment]:
        return (
            self.db.query(ProtocolAssignment)
            .filter(
                ProtocolAssignment.trainer_id == trainer_id,
                ProtocolAssignment.customer_id == customer_id,
                ProtocolAssignment.protocol_id == protocol_id,
                ProtocolAssignment.status == "active",
            )
            .first()
        )

    def _assign_one(
        self,
        protocol: TrainerHealthProtocol,
        trainer_id: str,
        customer_id: str,
        notes: Optional[str],
        start_date: Optional[datetime],
    ) -> ProtocolAssignment:
        existing = self._active_assignment(trainer_id, customer_id, protocol.id)
        if existing is not None:
            return existing

        start = start_date or datetime.now(timezone.utc)
        assignment = ProtocolAssignment(
            protocol_id=protocol.id,
            customer_id=customer_id,
            trainer_id=trainer_id,
            status="active",
            start_date=start,
            end_date=start + timedelta(days=protocol.duration),
            notes=notes,
            progress_data={},
        )
        self.db.add(assignment)
        self._ensure_link(trainer_id, customer_id)
        self.db.flush()
        return assignment

    def _ensure_link(self, trainer_id: str, customer_id: str) -> None:
        link = (
            self.db.query(TrainerCustomerRelationship)
            .filter(
                TrainerCustomerRelationship.trainer_id == trainer_id,
                TrainerCustomerRelationship.customer_id == customer_id,
            )
            .first()
        )
        if link is None:
            self.db.add(TrainerCustomerRelationship(trainer_id=trainer_id, customer_id=customer_id))
