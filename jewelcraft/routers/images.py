"""
Image Sharing Router
Time-limited public links for stored design images
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..config import SHARE_LINK_DAYS
from ..errors import StorageError
from ..models import ShareImagesRequest
from ..services.database import get_current_user, get_db
from ..services.image_storage import create_shareable_link, get_shared_images
from ..utils.secure_logger import secure_logger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/images", tags=["Images"])


@router.post("/share")
def share_images(
    request: ShareImagesRequest,
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """Create a share link that expires after SHARE_LINK_DAYS days"""
    if not request.designId or not request.imagePaths:
        raise HTTPException(status_code=400, detail="Design ID and image paths are required")

    try:
        link = create_shareable_link(db, request.designId, user.id, request.imagePaths)
    except StorageError as e:
        secure_logger.error("Failed to create share link", e, {"userId": user.id, "designId": request.designId})
        raise HTTPException(status_code=500, detail="Failed to create share link")

    secure_logger.info("Share link created", {
        "userId": user.id,
        "designId": request.designId,
        "expiresAt": link["expiresAt"],
    })

    return {
        "success": True,
        **link,
        "expiresInDays": SHARE_LINK_DAYS,
    }


@router.get("/shared/{token}")
def shared_images(token: str, db: Any = Depends(get_db)):
    """Public lookup of a share link, no auth required"""
    try:
        result = get_shared_images(db, token)
    except Exception as e:
        logger.error(f"Error fetching shared images: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    if result is None:
        raise HTTPException(status_code=404, detail="Share link not found or expired")

    return {"success": True, **result}
