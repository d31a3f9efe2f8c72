from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import BaseModel, ValidationError
from typing import Optional
from sqlalchemy.orm import Session
import json
import logging

from app.core.deps import require_role
from app.db.session import get_db
from app.models.user import User
from app.services.protocols.customer_service import CustomerService
from app.services.protocols.generator_service import HealthProtocolGenerator
from app.services.protocols.protocol_service import ProtocolService, ProtocolNotFound, InvalidAssignment
from app.services.protocols.safety_validator import validate_safety
from app.services.protocols.schemas import (
    AssignProtocol,
    AssignmentStatusUpdate,
    CreateHealthProtocol,
    GenerateProtocolRequest,
    SafetyCheckRequest,
    UpdateHealthProtocol,
)

router = APIRouter()
logger = logging.getLogger(__name__)

trainer_only = require_role("trainer")
trainer_or_admin = require_role("trainer", "admin")


class LinkCustomerRequest(BaseModel):
    notes: Optional[str] = None


def get_protocol_generator() -> HealthProtocolGenerator:
    return HealthProtocolGenerator()


def _invalid(message: str, errors=None) -> HTTPException:
    detail = {"message": message}
    if errors is not None:
        detail["errors"] = errors
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# ----- customers -----

@router.get("/customers")
async def list_customers(current_user: User = Depends(trainer_only), db: Session = Depends(get_db)):
    """Customers linked to this trainer"""
    return CustomerService(db).list_customers(current_user.id)


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str, current_user: User = Depends(trainer_only), db: Session = Depends(get_db)):
    detail = CustomerService(db).get_customer_detail(current_user.id, customer_id)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return detail


@router.post("/customers/{customer_id}/link", status_code=status.HTTP_201_CREATED)
async def link_customer(
    customer_id: str,
    body: LinkCustomerRequest,
    current_user: User = Depends(trainer_only),
    db: Session = Depends(get_db),
):
    link = CustomerService(db).link_customer(current_user.id, customer_id, body.notes)
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return {"trainerId": link.trainer_id, "customerId": link.customer_id, "status": link.status}


# ----- health protocols -----

@router.get("/health-protocols")
async def list_health_protocols(current_user: User = Depends(trainer_or_admin), db: Session = Depends(get_db)):
    protocols = ProtocolService(db).list_protocols(current_user.id)
    return {"protocols": protocols, "count": len(protocols)}


@router.post("/health-protocols", status_code=status.HTTP_201_CREATED)
async def create_health_protocol(
    request: Request,
    current_user: User = Depends(trainer_or_admin),
    db: Session = Depends(get_db),
):
    """Create a protocol, assigning it when ``targetCustomerId`` is present.

    The body size ceiling is enforced by the app middleware before we get here.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise _invalid("Request body must be valid JSON")

    try:
        data = CreateHealthProtocol.model_validate(payload)
    except ValidationError as e:
        logger.info(f"Rejected protocol from {current_user.id}: {e.error_count()} validation errors")
        raise _invalid("Invalid protocol data", json.loads(e.json(include_url=False)))

    # Admins author protocols but only trainers assign them
    if current_user.role == "admin" and data.target_customer_id is not None:
        raise _invalid("Admins cannot assign protocols to customers")

    try:
        protocol, assignment = ProtocolService(db).create_protocol(current_user.id, data)
    except InvalidAssignment as e:
        raise _invalid(str(e))

    result = protocol.to_dict()
    result["assignment"] = assignment.to_dict() if assignment is not None else None
    return result


@router.post("/health-protocols/generate")
async def generate_health_protocol(
    body: GenerateProtocolRequest,
    current_user: User = Depends(trainer_or_admin),
    db: Session = Depends(get_db),
    generator: HealthProtocolGenerator = Depends(get_protocol_generator),
):
    """Generate protocol content (LLM or template fallback) and save it"""
    generated = await generator.generate(body)
    data = CreateHealthProtocol(
        name=generated["name"][:255] or "Generated Protocol",
        description=generated["description"],
        type=generated["type"],
        duration=generated["duration"],
        intensity=generated["intensity"],
        config=generated["config"],
        tags=generated["tags"],
    )
    protocol, _ = ProtocolService(db).create_protocol(current_user.id, data)
    return {"protocol": protocol.to_dict(), "aiRecommendations": generated["recommendations"]}


@router.get("/health-protocols/{protocol_id}")
async def get_health_protocol(protocol_id: str, current_user: User = Depends(trainer_or_admin), db: Session = Depends(get_db)):
    try:
        protocol = ProtocolService(db).get_owned(protocol_id, current_user.id)
    except ProtocolNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    result = protocol.to_dict()
    result["assignments"] = [a.to_dict() for a in protocol.assignments]
    return result


@router.put("/health-protocols/{protocol_id}")
async def update_health_protocol(
    protocol_id: str,
    updates: UpdateHealthProtocol,
    current_user: User = Depends(trainer_or_admin),
    db: Session = Depends(get_db),
):
    service = ProtocolService(db)
    try:
        protocol = service.get_owned(protocol_id, current_user.id)
    except ProtocolNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return service.update_protocol(protocol, updates).to_dict()


@router.delete("/health-protocols/{protocol_id}")
async def delete_health_protocol(protocol_id: str, current_user: User = Depends(trainer_or_admin), db: Session = Depends(get_db)):
    service = ProtocolService(db)
    try:
        protocol = service.get_owned(protocol_id, current_user.id)
    except ProtocolNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    service.delete_protocol(protocol)
    return {"message": "Protocol deleted successfully"}


@router.post("/health-protocols/{protocol_id}/assign")
async def assign_health_protocol(
    protocol_id: str,
    body: AssignProtocol,
    current_user: User = Depends(trainer_only),
    db: Session = Depends(get_db),
):
    service = ProtocolService(db)
    try:
        protocol = service.get_owned(protocol_id, current_user.id)
        assignments = service.assign(protocol, current_user.id, body.client_ids, body.notes, body.start_date)
    except ProtocolNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidAssignment as e:
        raise _invalid(str(e))
    return {
        "message": f"Protocol assigned to {len(assignments)} client(s)",
        "assignments": [a.to_dict() for a in assignments],
    }


# ----- safety -----

@router.post("/safety-check")
async def safety_check(body: SafetyCheckRequest, current_user: User = Depends(trainer_or_admin)):
    """Screen medications, conditions and age before a protocol is created"""
    report = validate_safety(
        medications=body.medications,
        conditions=body.conditions,
        age=body.age,
        protocol_type=body.protocol_type,
        pregnancy=body.pregnancy,
    )
    return {"success": True, "data": report}


# ----- assignments -----

@router.get("/protocol-assignments")
async def list_protocol_assignments(current_user: User = Depends(trainer_only), db: Session = Depends(get_db)):
    return ProtocolService(db).list_assignments(current_user.id)


@router.patch("/protocol-assignments/{assignment_id}")
async def update_protocol_assignment(
    assignment_id: str,
    body: AssignmentStatusUpdate,
    current_user: User = Depends(trainer_only),
    db: Session = Depends(get_db),
):
    try:
        assignment = ProtocolService(db).update_assignment_status(assignment_id, current_user.id, body.status, body.notes)
    except ProtocolNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidAssignment as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return assignment.to_dict()
