"""
Orders Router
Creates pending orders and creator commissions for shared designs
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..models import CreateOrderRequest
from ..services.database import get_current_user, get_db
from ..utils.secure_logger import secure_logger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def commission_cents(subtotal_cents: int, rate: Optional[float]) -> int:
    """Creator commission on the order subtotal, rounded to the cent"""
    if not rate:
        return 0
    return int(subtotal_cents * float(rate) + 0.5)


def _shared_design(db: Any, design_id: str) -> Optional[Dict[str, Any]]:
    result = (
        db.table("shared_designs")
        .select("id, creator_id, creator_commission_rate, total_orders, total_revenue")
        .eq("id", design_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def _record_shared_design_sale(db: Any, shared: Dict[str, Any], order_id: str, total: int, commission: int) -> None:
    """Bump the shared design's sales stats and queue the creator's commission"""
    db.table("shared_designs").update({
        "total_orders": (shared.get("total_orders") or 0) + 1,
        "total_revenue": (shared.get("total_revenue") or 0) + total,
    }).eq("id", shared["id"]).execute()

    if commission > 0:
        db.table("commission_payments").insert({
            "creator_id": shared.get("creator_id"),
            "order_id": order_id,
            "shared_design_id": shared["id"],
            "amount_cents": commission,
            "status": "pending",
        }).execute()


@router.post("/create")
def create_order(
    request: CreateOrderRequest,
    user: Any = Depends(get_current_user),
    db: Any = Depends(get_db),
):
    """
    Create a pending order, amounts are stored in cents
    """
    pricing = request.pricingBreakdown
    subtotal = to_cents(pricing.subtotal)
    total = to_cents(pricing.total)

    try:
        shared = _shared_design(db, request.designId) if request.designId else None
        commission = commission_cents(subtotal, shared.get("creator_commission_rate")) if shared else 0

        result = db.table("orders").insert({
            "user_id": user.id,
            "shared_design_id": shared["id"] if shared else None,
            "status": "pending",
            "subtotal_cents": subtotal,
            "discount_cents": to_cents(pricing.discount),
            "commission_cents": commission,
            "total_cents": total,
            "custom_prompt": request.customPrompt,
            "custom_images": request.images,
            "custom_pricing": pricing.model_dump(),
            "payment_method": request.paymentMethod,
            "stripe_payment_intent_id": request.stripePaymentIntentId,
            "shipping_address": request.shippingInfo,
        }).execute()
        order = result.data[0] if result.data else None
        if order is None:
            raise HTTPException(status_code=500, detail="Failed to create order")

    except HTTPException:
        raise
    except Exception as e:
        secure_logger.error("Order creation failed", e, {"userId": user.id})
        raise HTTPException(status_code=500, detail="Failed to create order")

    # The order row exists from here on, a stats or commission failure must not fail the request
    if shared:
        try:
            _record_shared_design_sale(db, shared, order["id"], total, commission)
        except Exception as e:
            secure_logger.error(
                "Shared design sale bookkeeping failed",
                e,
                {"orderId": order["id"], "sharedDesignId": shared["id"]},
            )

    secure_logger.audit("order_created", user.id, "orders", {"orderId": order["id"], "totalCents": total})
    return {"success": True, "id": order["id"], "orderId": order["id"]}
