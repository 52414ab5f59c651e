"""
Image Storage Service
Copies generated images into Supabase Storage and manages share links
"""
import asyncio
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from supabase import Client

from ..config import (
    ALLOWED_IMAGE_MIME_TYPES,
    DOWNLOAD_TIMEOUT,
    IMAGE_BUCKET,
    IMAGE_CACHE_CONTROL,
    MAX_IMAGE_SIZE_BYTES,
    SHARE_LINK_DAYS,
    settings,
)
from ..errors import StorageError
from ..utils.sanitizers import safe_path_segment
from ..utils.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

SHARED_IMAGES_TABLE = "shared_images"


def design_prefix(design_id: str, user_id: Optional[str] = None) -> str:
    """Folder holding every view of one design"""
    return f"{safe_path_segment(user_id or '')}/{safe_path_segment(design_id, 'design')}/"


async def download_image(url: str) -> bytes:
    """Fetch image bytes, provider URLs expire after a couple of hours"""
    async with httpx.AsyncClient(timeout=float(DOWNLOAD_TIMEOUT)) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.content


async def upload_image_to_storage(
    db: Client,
    image_url: str,
    design_id: str,
    view_number: int,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Download one generated image and store it permanently
    Args:
        db: Supabase client
        image_url: Temporary provider URL
        design_id: Design the image belongs to
        view_number: View index, used in the file name
        user_id: Owner, anonymous when None
    Returns:
        {"success": bool, "publicUrl": str | None, "error": str | None}
    """
    try:
        logger.info(f"Downloading generated image (view {view_number})")
        image_bytes = await download_image(image_url)

        timestamp = int(time.time() * 1000)
        path = f"{design_prefix(design_id, user_id)}view_{view_number}_{timestamp}.png"

        logger.info(f"Uploading to storage: {path}")
        # supabase-py storage calls block, keep them off the event loop
        bucket = db.storage.from_(IMAGE_BUCKET)
        await asyncio.to_thread(
            bucket.upload,
            path,
            image_bytes,
            file_options={
                "content-type": "image/png",
                "cache-control": IMAGE_CACHE_CONTROL,
                "upsert": "false",
            },
        )
        public_url = await asyncio.to_thread(bucket.get_public_url, path)

        return {"success": True, "publicUrl": public_url, "path": path, "error": None}

    except Exception as e:
        logger.error(f"Image storage failed for view {view_number}: {e}")
        return {"success": False, "publicUrl": None, "path": None, "error": str(e)}


async def store_design_images(
    db: Client,
    images: List[Dict[str, Any]],
    design_id: str,
    user_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Store every view of a design, one at a time
    Args:
        images: [{"url": ..., "viewNumber": ...}]
    Returns:
        Per-view results with originalUrl, storageUrl and error
    """
    results = []
    for image in images:
        result = await upload_image_to_storage(db, image["url"], design_id, image["viewNumber"], user_id)
        results.append({
            "viewNumber": image["viewNumber"],
            "originalUrl": image["url"],
            "storageUrl": result["publicUrl"],
            "path": result["path"],
            "error": result["error"],
        })
    return results


def initialize_storage_bucket(db: Client) -> Dict[str, Any]:
    """Create the public image bucket if it does not exist yet"""
    try:
        buckets = db.storage.list_buckets() or []
        if any(getattr(b, "name", None) == IMAGE_BUCKET for b in buckets):
            return {"success": True, "message": f"Bucket '{IMAGE_BUCKET}' already exists"}

        db.storage.create_bucket(
            IMAGE_BUCKET,
            options={
                "public": True,
                "file_size_limit": MAX_IMAGE_SIZE_BYTES,
                "allowed_mime_types": ALLOWED_IMAGE_MIME_TYPES,
            },
        )
        logger.info(f"Storage bucket '{IMAGE_BUCKET}' created")
        return {"success": True, "message": f"Bucket '{IMAGE_BUCKET}' created successfully"}

    except Exception as e:
        logger.error(f"Bucket initialization failed: {e}")
        return {"success": False, "message": f"Failed to create bucket: {e}"}


def delete_design_images(db: Client, design_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    """Remove every stored view of a design, used before regenerating"""
    prefix = design_prefix(design_id, user_id)
    try:
        files = db.storage.from_(IMAGE_BUCKET).list(prefix.rstrip("/")) or []
        if not files:
            return {"success": True, "deletedCount": 0}

        paths = [f"{prefix}{f['name']}" for f in files]
        db.storage.from_(IMAGE_BUCKET).remove(paths)
        logger.info(f"Deleted {len(paths)} images for design {design_id}")
        return {"success": True, "deletedCount": len(paths)}

    except Exception as e:
        logger.error(f"Deleting images for design {design_id} failed: {e}")
        return {"success": False, "deletedCount": 0}


# ============================================================
# SHARE LINKS
# ============================================================

def create_shareable_link(db: Client, design_id: str, user_id: str, image_paths: List[str]) -> Dict[str, Any]:
    """
    Create a public share link for stored images
    Args:
        design_id: Design being shared
        user_id: Owner creating the link
        image_paths: Storage paths inside the image bucket
    Returns:
        shareUrl, shareToken and expiresAt (ISO 8601)
    Raises:
        StorageError: Link could not be recorded
    """
    token = secrets.token_urlsafe(24)
    expires_at = datetime.now(timezone.utc) + timedelta(days=SHARE_LINK_DAYS)

    try:
        db.table(SHARED_IMAGES_TABLE).insert({
            "share_token": token,
            "design_id": design_id,
            "user_id": user_id,
            "image_paths": image_paths,
            "expires_at": expires_at.isoformat(),
        }).execute()
    except Exception as e:
        raise StorageError(f"Failed to create share link: {e}") from e

    return {
        "shareUrl": f"{settings.PUBLIC_SITE_URL.rstrip('/')}/shared/images/{token}",
        "shareToken": token,
        "expiresAt": expires_at.isoformat(),
    }


def get_shared_images(db: Client, token: str) -> Optional[Dict[str, Any]]:
    """
    Resolve a share token
    Returns:
        images, designId and expiresAt, or None for unknown or expired tokens
    """
    result = db.table(SHARED_IMAGES_TABLE).select("*").eq("share_token", token).limit(1).execute()
    rows = result.data or []
    if not rows:
        return None

    row = rows[0]
    expires_at = parse_timestamp(row.get("expires_at"))
    if expires_at is None or expires_at <= datetime.now(timezone.utc):
        logger.info(f"Share link expired for design {row.get('design_id')}")
        return None

    bucket = db.storage.from_(IMAGE_BUCKET)
    images = [
        {"path": path, "url": bucket.get_public_url(path)}
        for path in row.get("image_paths") or []
    ]

    return {
        "images": images,
        "designId": row.get("design_id"),
        "expiresAt": expires_at.isoformat(),
    }
