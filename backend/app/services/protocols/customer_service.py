from typing import Dict, List, Any, Optional
import logging
from sqlalchemy.orm import Session

from app.models.protocol import ProtocolAssignment
from app.models.user import User, TrainerCustomerRelationship

logger = logging.getLogger(__name__)


class CustomerService:
    """Trainer-facing customer queries"""

    def __init__(self, db: Session):
        self.db = db

    def list_customers(self, trainer_id: str) -> List[Dict[str, Any]]:
        """Customers linked to the trainer directly or through any assignment"""
        customers: Dict[str, Dict[str, Any]] = {}

        links = (
            self.db.query(TrainerCustomerRelationship, User)
            .join(User, User.id == TrainerCustomerRelationship.customer_id)
            .filter(
                TrainerCustomerRelationship.trainer_id == trainer_id,
                TrainerCustomerRelationship.status == "active",
            )
            .all()
        )
        for link, user in links:
            customers[user.id] = self._summary(user, link.assigned_date)

        assignments = (
            self.db.query(ProtocolAssignment, User)
            .join(User, User.id == ProtocolAssignment.customer_id)
            .filter(ProtocolAssignment.trainer_id == trainer_id)
            .all()
        )
        for assignment, user in assignments:
            entry = customers.setdefault(user.id, self._summary(user, assignment.assigned_at))
            if assignment.status == "active":
                entry["activeProtocols"] += 1
            elif assignment.status == "completed":
                entry["completedProtocols"] += 1

        return sorted(customers.values(), key=lambda c: ((c["name"] or c["email"]).lower(), c["id"]))

    def get_customer_detail(self, trainer_id: str, customer_id: str) -> Optional[Dict[str, Any]]:
        customer = self.db.query(User).filter(User.id == customer_id, User.role == "customer").first()
        if not customer:
            return None
        assignments = (
            self.db.query(ProtocolAssignment)
            .filter(
                ProtocolAssignment.customer_id == customer_id,
                ProtocolAssignment.trainer_id == trainer_id,
            )
            .all()
        )
        return {
            "customer": customer.to_dict(),
            "protocolAssignments": [a.to_dict() for a in assignments],
        }

    def link_customer(self, trainer_id: str, customer_id: str, notes: Optional[str] = None) -> Optional[TrainerCustomerRelationship]:
        """Create or reactivate the trainer/customer link. None when the customer does not exist."""
        customer = self.db.query(User).filter(User.id == customer_id, User.role == "customer").first()
        if not customer:
            return None
        link = (
            self.db.query(TrainerCustomerRelationship)
            .filter(
                TrainerCustomerRelationship.trainer_id == trainer_id,
                TrainerCustomerRelationship.customer_id == customer_id,
            )
            .first()
        )
        if link is None:
            link = TrainerCustomerRelationship(trainer_id=trainer_id, customer_id=customer_id, notes=notes)
            self.db.add(link)
            logger.info(f"Linked customer {customer_id} to trainer {trainer_id}")
        else:
            link.status = "active"
            if notes is not None:
                link.notes = notes
        self.db.commit()
        self.db.refresh(link)
        return link

    def _summary(self, user: User, since) -> Dict[str, Any]:
        return {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "firstAssignedAt": since.isoformat() if since else None,
            "activeProtocols": 0,
            "completedProtocols": 0,
        }
