from fastapi import APIRouter, HTTPException, status, Query
from typing import Optional

from app.services.protocols.ailments import ailment_catalog

router = APIRouter()


@router.get("")
async def list_ailments(
    category: Optional[str] = None,
    q: Optional[str] = Query(None, description="Search name, description and symptoms"),
):
    """Ailment catalog used by the health information step"""
    if q:
        ailments = ailment_catalog.search(q)
    else:
        ailments = ailment_catalog.ailments
    if category:
        ailments = [a for a in ailments if a["category"] == category]
    return {"success": True, "data": ailments, "count": len(ailments)}


@router.get("/categories")
async def list_ailment_categories():
    categories = ailment_catalog.categories()
    return {"success": True, "data": categories, "count": len(categories)}


@router.get("/{ailment_id}")
async def get_ailment(ailment_id: str):
    ailment = ailment_catalog.get(ailment_id)
    if ailment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ailment not found")
    return {"success": True, "data": ailment}
