"""
Saved Designs Router
Private saved designs and the public shared design gallery
"""
import logging
import re
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from postgrest.exceptions import APIError

from ..config import DEFAULT_SHARED_PRICE_CENTS, SHARED_DESIGN_PAGE_SIZE, SHARED_DESIGN_SORTS
from ..models import SaveDesignRequest, SharedDesignRequest
from ..services.database import get_current_user, get_db
from ..utils.secure_logger import secure_logger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/designs", tags=["Designs"])

# sort key -> (column, descending)
SORT_COLUMNS = {
    "newest": ("created_at", True),
    "popular": ("total_orders", True),
    "price_low": ("estimated_price", False),
    "price_high": ("estimated_price", True),
}

NOT_FOUND_CODE = "PGRST116"


def price_in_cents(pricing_breakdown: Optional[dict]) -> int:
    """Shared designs store the final price in cents"""
    final_price = (pricing_breakdown or {}).get("finalPrice")
    if not final_price:
        return DEFAULT_SHARED_PRICE_CENTS
    return int(float(final_price) * 100 + 0.5)


def _search_term(search: str) -> str:
    # commas, parentheses, braces and quotes would break out of the PostgREST or-filter
    return re.sub(r'[,()*%{}"]', ' ', search).strip()


# ============================================================
# SAVED DESIGNS
# ============================================================

@router.post("/save")
def save_design(
    request: SaveDesignRequest,
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """
    Save a design to the caller's account, optionally publishing a shared copy
    """
    if not request.prompt or request.images is None:
        raise HTTPException(status_code=400, detail="Missing required fields: prompt and images are required")

    secure_logger.info("Saving design", {"userId": user.id, "makePublic": request.makePublic})

    try:
        result = db.table("user_designs").insert({
            "user_id": user.id,
            "title": request.title or "Untitled Design",
            "prompt": request.prompt,
            "images": request.images,
            "specifications": request.specifications,
            "pricing_breakdown": request.pricing_breakdown,
            "jewelry_type": request.jewelry_type or "custom",
            "style_tags": request.style_tags or [],
            "materials": request.materials or {},
            "status": "saved",
        }).execute()
        saved_design = result.data[0] if result.data else None
        if saved_design is None:
            raise HTTPException(status_code=500, detail="Failed to save design")
    except HTTPException:
        raise
    except Exception as e:
        secure_logger.error("Failed to save design", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to save design")

    secure_logger.info("Design saved successfully", {"userId": user.id, "designId": saved_design.get("id")})

    shared_design = None
    if request.makePublic:
        try:
            shared = db.table("shared_designs").insert({
                "creator_id": user.id,
                "title": request.title or "Custom Design",
                "prompt": request.prompt,
                "tags": request.style_tags or [],
                "jewelry_type": request.jewelry_type or "custom",
                "style_tags": request.style_tags or [],
                "materials": request.materials if isinstance(request.materials, list) else [],
                "estimated_price": price_in_cents(request.pricing_breakdown),
                "pricing_breakdown": request.pricing_breakdown,
                "images": request.images,
                "is_public": True,
            }).execute()
            shared_design = shared.data[0] if shared.data else None
            secure_logger.info("Shared design created", {"userId": user.id})
        except Exception as e:
            # the private copy is already saved, publishing is best effort
            secure_logger.error("Failed to create shared design", e, {"userId": user.id})

    return {
        "success": True,
        "design": saved_design,
        "sharedDesign": shared_design,
        "message": "Design saved successfully!",
    }


@router.get("/save")
def list_saved_designs(user: Any = Depends(get_current_user), db: Any = Depends(get_db)):
    """Caller's saved designs, newest first"""
    try:
        result = (
            db.table("user_designs")
            .select("*")
            .eq("user_id", user.id)
            .order("created_at", desc=True)
            .execute()
        )
    except Exception as e:
        secure_logger.error("Failed to fetch designs", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to fetch designs")

    designs = result.data or []
    return {"designs": designs, "total": len(designs)}


@router.delete("/save")
def delete_saved_design(
    id: Optional[str] = Query(default=None),
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """Delete one of the caller's saved designs"""
    if not id:
        raise HTTPException(status_code=400, detail="Design ID required")

    try:
        db.table("user_designs").delete().eq("id", id).eq("user_id", user.id).execute()
    except Exception as e:
        secure_logger.error("Failed to delete design", e, {"userId": user.id, "designId": id})
        raise HTTPException(status_code=500, detail="Failed to delete design")

    secure_logger.info("Design deleted", {"userId": user.id, "designId": id})
    return {"success": True, "message": "Design deleted successfully"}


# ============================================================
# SHARED GALLERY
# ============================================================

@router.get("/shared")
def list_shared_designs(
    limit: int = Query(default=SHARED_DESIGN_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    type: Optional[str] = None,
    search: Optional[str] = None,
    sortBy: str = "newest",
    db: Any = Depends(get_db),
):
    """
    Public gallery with type filter, text search and sorting
    """
    if sortBy not in SHARED_DESIGN_SORTS:
        sortBy = "newest"
    column, descending = SORT_COLUMNS[sortBy]

    try:
        query = (
            db.table("shared_designs")
            .select("*")
            .eq("is_public", True)
            .range(offset, offset + limit - 1)
        )

        if type and type != "all":
            query = query.eq("jewelry_type", type)

        term = _search_term(search or "")
        if term:
            query = query.or_(f"title.ilike.%{term}%,prompt.ilike.%{term}%,tags.cs.{{{term}}}")

        result = query.order(column, desc=descending).execute()

    except Exception as e:
        logger.error(f"Failed to fetch shared designs: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch designs")

    return result.data or []


@router.post("/shared")
def create_shared_design(
    request: SharedDesignRequest,
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """Publish a design to the gallery, price given in cents"""
    try:
        result = db.table("shared_designs").insert({
            "creator_id": user.id,
            "title": request.title,
            "prompt": request.prompt,
            "tags": request.tags,
            "jewelry_type": request.jewelry_type,
            "style_tags": request.style_tags,
            "materials": request.materials,
            "estimated_price": int(request.estimated_price + 0.5),
            "pricing_breakdown": request.pricing_breakdown,
            "images": request.images,
            "is_public": True,
        }).execute()
    except Exception as e:
        secure_logger.error("Failed to create shared design", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to create design")

    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to create design")
    return result.data[0]


@router.get("/shared/{design_id}")
def get_shared_design(design_id: str, db: Any = Depends(get_db)):
    """One public design"""
    try:
        result = (
            db.table("shared_designs")
            .select("*")
            .eq("id", design_id)
            .eq("is_public", True)
            .single()
            .execute()
        )
    except APIError as e:
        if e.code == NOT_FOUND_CODE:
            raise HTTPException(status_code=404, detail="Design not found or not public")
        logger.error(f"Failed to fetch shared design {design_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch design")

    if not result.data:
        raise HTTPException(status_code=404, detail="Design not found")
    return result.data
