"""
User Data Router
GDPR consent records, data export and account deletion
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from ..config import CONSENT_TYPES, CONSENT_VERSION, DELETION_GRACE_DAYS
from ..models import ConsentRequest, ConsentUpdateRequest, DeleteAccountRequest
from ..services.database import get_current_user, get_db, get_optional_user
from ..utils.secure_logger import secure_logger
from ..utils.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["User Data"])


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


def consent_columns(consent_type: str, consent_given: bool, consent_version: str) -> Dict[str, Any]:
    """users table columns touched by a consent change"""
    if consent_type in ("privacy", "terms"):
        return {
            "gdpr_consent_given": consent_given,
            "gdpr_consent_date": datetime.now(timezone.utc).isoformat(),
            "gdpr_consent_version": consent_version,
        }
    if consent_type == "marketing":
        return {"marketing_consent": consent_given}
    if consent_type == "data_retention":
        return {"data_retention_notice_accepted": consent_given}
    return {}


def _first_row(result: Any) -> Optional[Dict[str, Any]]:
    data = getattr(result, "data", None)
    if isinstance(data, list):
        return data[0] if data else None
    return data


# ============================================================
# CONSENT
# ============================================================

@router.post("/consent")
def record_consent(
    body: ConsentRequest,
    request: Request,
    user: Optional[Any] = Depends(get_optional_user),
    db: Any = Depends(get_db),
):
    """
    Record a consent decision in the consent log and on the user row
    Anonymous callers (pre-signup consent) only reach the log, never the users table
    """
    if not body.userId or not body.consentType or body.consentGiven is None or not body.consentVersion:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if body.consentType not in CONSENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid consent type")
    if user is not None and body.userId != user.id:
        secure_logger.warn("Consent recorded for another user refused", {"userId": user.id})
        raise HTTPException(status_code=403, detail="Cannot record consent for another user")

    try:
        db.table("gdpr_consent_log").insert({
            "user_id": body.userId,
            "consent_type": body.consentType,
            "consent_given": body.consentGiven,
            "consent_version": body.consentVersion,
            "ip_address": _client_ip(request),
            "user_agent": request.headers.get("user-agent") or "unknown",
            "consent_text": body.consentText or f"{body.consentType} consent",
        }).execute()
    except Exception as e:
        secure_logger.error("Failed to record consent", e, {"userId": body.userId})
        raise HTTPException(status_code=500, detail="Failed to record consent")

    update = consent_columns(body.consentType, body.consentGiven, body.consentVersion)
    if update and user is None:
        secure_logger.info("Anonymous consent logged, user row left unchanged", {"consentType": body.consentType})
    elif update:
        try:
            db.table("users").update(update).eq("id", body.userId).execute()
        except Exception as e:
            # the log entry is the record of truth, the user row is a cache
            secure_logger.error("Failed to update user consent", e, {"userId": body.userId})

    secure_logger.gdpr("consent", body.userId, {
        "consentType": body.consentType,
        "consentGiven": body.consentGiven,
        "version": body.consentVersion,
    })

    return {
        "success": True,
        "message": "Consent recorded successfully",
        "consentId": body.userId,
        "recordedAt": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/consent")
def get_consent(user: Any = Depends(get_current_user), db: Any = Depends(get_db)):
    """Current consent state and full history"""
    try:
        history = (
            db.table("gdpr_consent_log")
            .select("consent_type, consent_given, consent_version, created_at")
            .eq("user_id", user.id)
            .order("created_at", desc=True)
            .execute()
        )
        current = (
            db.table("users")
            .select(
                "gdpr_consent_given, gdpr_consent_date, gdpr_consent_version, "
                "marketing_consent, data_retention_notice_accepted"
            )
            .eq("id", user.id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        secure_logger.error("Failed to fetch consent history", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to fetch consent history")

    row = _first_row(current) or {}
    return {
        "currentConsent": {
            "gdprConsent": bool(row.get("gdpr_consent_given")),
            "gdprConsentDate": row.get("gdpr_consent_date"),
            "gdprConsentVersion": row.get("gdpr_consent_version"),
            "marketingConsent": bool(row.get("marketing_consent")),
            "dataRetentionAccepted": bool(row.get("data_retention_notice_accepted")),
        },
        "consentHistory": history.data or [],
    }


@router.patch("/consent")
def update_consent(
    body: ConsentUpdateRequest,
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """Grant or withdraw a consent type"""
    if body.consentType not in CONSENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid consent type")

    verb = "granted" if body.consentGiven else "withdrawn"

    try:
        db.table("gdpr_consent_log").insert({
            "user_id": user.id,
            "consent_type": body.consentType,
            "consent_given": body.consentGiven,
            "consent_version": CONSENT_VERSION,
            "consent_text": f"{body.consentType} consent {verb}",
        }).execute()

        if body.consentType == "marketing":
            db.table("users").update({"marketing_consent": body.consentGiven}).eq("id", user.id).execute()
    except Exception as e:
        secure_logger.error("Error updating consent", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to update consent")

    secure_logger.gdpr("consent", user.id, {"change": verb, "consentType": body.consentType})
    return {"success": True, "message": f"Consent {verb} successfully"}


# ============================================================
# DATA EXPORT
# ============================================================

@router.post("/export-data")
def export_data(user: Any = Depends(get_current_user), db: Any = Depends(get_db)):
    """
    Export everything held about the caller as a JSON download
    """
    secure_logger.gdpr("export", user.id, {"initiatedBy": "user"})

    try:
        result = db.rpc("export_user_data", {"target_user_id": user.id}).execute()
    except Exception as e:
        secure_logger.error("Data export failed", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to export data")

    payload = json.dumps(result.data, indent=2, default=str)
    secure_logger.info("User data exported successfully", {"userId": user.id, "dataSize": len(payload)})

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
    return Response(
        content=payload,
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="user-data-{user.id}-{stamp}.json"',
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.get("/export-data")
def export_status(user: Any = Depends(get_current_user), db: Any = Depends(get_db)):
    """Date of the caller's most recent export"""
    try:
        result = (
            db.table("audit_logs")
            .select("created_at")
            .eq("user_id", user.id)
            .eq("action", "export")
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
    except Exception as e:
        secure_logger.error("Error checking export status", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to check export status")

    row = _first_row(result) or {}
    return {
        "canExport": True,
        "lastExport": row.get("created_at"),
        "gdprCompliance": (
            "You can export your data at any time. "
            "Data will be provided in JSON format within 30 days."
        ),
    }


# ============================================================
# ACCOUNT DELETION
# ============================================================

@router.post("/delete-account")
def delete_account(
    body: Optional[DeleteAccountRequest] = None,
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """
    Anonymize the account now, or schedule deletion after the grace period
    """
    body = body or DeleteAccountRequest()
    secure_logger.gdpr("deletion", user.id, {
        "immediate": body.immediate,
        "reasonGiven": bool(body.reason),
    })

    if body.immediate:
        try:
            db.rpc("anonymize_user_data", {"target_user_id": user.id}).execute()
        except Exception as e:
            secure_logger.error("Immediate anonymization failed", e, {"userId": user.id})
            raise HTTPException(status_code=500, detail="Failed to anonymize data")

        secure_logger.info("User data anonymized immediately", {"userId": user.id})
        return {
            "success": True,
            "message": "Your account has been anonymized and deleted.",
            "deletedAt": datetime.now(timezone.utc).isoformat(),
        }

    try:
        db.rpc("schedule_user_deletion", {
            "target_user_id": user.id,
            "days_until_deletion": DELETION_GRACE_DAYS,
        }).execute()
    except Exception as e:
        secure_logger.error("Failed to schedule deletion", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to schedule deletion")

    secure_logger.info("User deletion scheduled", {"userId": user.id})
    scheduled_for = datetime.now(timezone.utc) + timedelta(days=DELETION_GRACE_DAYS)
    return {
        "success": True,
        "message": "Your account deletion has been scheduled.",
        "scheduledFor": scheduled_for.isoformat(),
        "gracePeriodDays": DELETION_GRACE_DAYS,
        "cancellationInstructions": (
            f"You can cancel this request from your account settings within {DELETION_GRACE_DAYS} days."
        ),
    }


@router.delete("/delete-account")
def cancel_deletion(user: Any = Depends(get_current_user), db: Any = Depends(get_db)):
    """Cancel a scheduled deletion"""
    try:
        db.table("users").update({
            "scheduled_deletion_date": None,
            "deletion_requested": False,
            "deletion_requested_at": None,
        }).eq("id", user.id).execute()
    except Exception as e:
        secure_logger.error("Failed to cancel deletion", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to cancel deletion")

    secure_logger.gdpr("deletion", user.id, {"change": "cancelled"})
    return {"success": True, "message": "Your account deletion request has been cancelled."}


@router.get("/delete-account")
def deletion_status(user: Any = Depends(get_current_user), db: Any = Depends(get_db)):
    """Whether deletion is pending and can still be cancelled"""
    try:
        result = (
            db.table("users")
            .select("deletion_requested, scheduled_deletion_date, deletion_requested_at")
            .eq("id", user.id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        secure_logger.error("Error checking deletion status", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to check deletion status")

    row = _first_row(result) or {}
    scheduled = parse_timestamp(row.get("scheduled_deletion_date"))
    requested = bool(row.get("deletion_requested"))

    return {
        "deletionRequested": requested,
        "scheduledFor": row.get("scheduled_deletion_date"),
        "requestedAt": row.get("deletion_requested_at"),
        "canCancel": bool(requested and scheduled and scheduled > datetime.now(timezone.utc)),
    }
