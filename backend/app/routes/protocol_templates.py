from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Optional
from sqlalchemy.orm import Session
import logging

from app.core.deps import get_current_user, require_role
from app.db.session import get_db
from app.models.user import User
from app.services.protocols.schemas import CreateProtocolTemplate, GenerateFromTemplate
from app.services.protocols.template_engine import ProtocolTemplateEngine

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def list_templates(
    category: Optional[str] = None,
    protocol_type: Optional[str] = Query(None, alias="protocolType"),
    tags: Optional[str] = Query(None, description="Comma-separated tag filter"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List active protocol templates, most popular first"""
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    templates = ProtocolTemplateEngine(db).list_templates(category=category, protocol_type=protocol_type, tags=tag_list)
    data = [t.to_dict() for t in templates]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/categories")
async def list_categories(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    categories = ProtocolTemplateEngine(db).categories()
    return {"success": True, "data": categories, "count": len(categories)}


@router.get("/search")
async def search_templates(
    q: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = [t.to_dict() for t in ProtocolTemplateEngine(db).search(q)]
    return {"success": True, "data": data, "count": len(data)}


@router.get("/{template_id}")
async def get_template(template_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    template = ProtocolTemplateEngine(db).get_template(template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return {"success": True, "data": template.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_template(
    body: CreateProtocolTemplate,
    current_user: User = Depends(require_role("trainer", "admin")),
    db: Session = Depends(get_db),
):
    template = ProtocolTemplateEngine(db).create_template(body, created_by=current_user.id)
    return {"success": True, "data": template.to_dict()}


@router.post("/{template_id}/generate")
async def generate_from_template(
    template_id: str,
    body: GenerateFromTemplate,
    current_user: User = Depends(require_role("trainer", "admin")),
    db: Session = Depends(get_db),
):
    """Customized protocol body built from a template; nothing is persisted"""
    engine = ProtocolTemplateEngine(db)
    template = engine.get_template(template_id)
    if not template or not template.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    protocol = engine.generate_from_template(template, body.customization, body.protocol_name)
    return {"success": True, "data": protocol}
