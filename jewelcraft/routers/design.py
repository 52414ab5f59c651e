"""
Design Router
Generate designs from a customer vision, plus pricing and production checks
"""
import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..config import GENERATION_TIMEOUT
from ..errors import ConfigurationError, GenerationError
from ..models import (
    EstimateRequest,
    EstimateResponse,
    GenerateDesignRequest,
    GenerateDesignResponse,
    ValidateDesignRequest,
    ValidateDesignResponse,
)
from ..services import generation
from ..services.database import get_optional_db, get_optional_user
from ..services.design_validator import extract_custom_elements, suggest_prompt_improvements
from ..services.manufacturing import (
    calculate_complexity,
    estimate_production_days,
    sanitize_prompt_for_production,
    validate_design_for_production,
)
from ..services.pricing import calculate_jewelry_price, fetch_spot_prices, parse_jewelry_specs
from ..utils.sanitizers import normalize_vision

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/design", tags=["Design"])


@router.post("/generate", response_model=GenerateDesignResponse)
async def generate_design_endpoint(
    request: GenerateDesignRequest,
    user: Optional[Any] = Depends(get_optional_user),
    db: Optional[Any] = Depends(get_optional_db),
):
    """
    Generate 2-4 consistent views of a custom piece with pricing and specifications
    """
    try:
        return await asyncio.wait_for(
            generation.generate_design(
                request.user_vision,
                views=request.views,
                user_id=getattr(user, "id", None),
                persist=request.persist,
                db=db,
                design_id=request.design_id,
            ),
            timeout=GENERATION_TIMEOUT,
        )

    except ValueError as e:
        logger.warning(f"Rejected design request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationError as e:
        logger.error(f"Generation unavailable: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except GenerationError as e:
        logger.error(f"Generation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except asyncio.TimeoutError:
        logger.error(f"Design generation exceeded {GENERATION_TIMEOUT}s")
        raise HTTPException(status_code=504, detail="Design generation timed out. Please try again.")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Design generation error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Design generation failed: {str(e)}")


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_endpoint(request: EstimateRequest):
    """
    Price a design description without generating images
    """
    prompt = normalize_vision(request.prompt)
    if not prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")

    specs = parse_jewelry_specs(prompt)
    spot_prices = await fetch_spot_prices()
    pricing = calculate_jewelry_price(specs, spot_prices)
    complexity = calculate_complexity(prompt)

    logger.info(f"Estimated {specs.type} at ${pricing.finalPrice} (complexity {complexity})")

    return EstimateResponse(
        success=True,
        specs=specs,
        pricing=pricing,
        complexity=complexity,
        production_days=estimate_production_days(complexity),
        spot_prices=spot_prices,
    )


@router.post("/validate", response_model=ValidateDesignResponse)
async def validate_endpoint(request: ValidateDesignRequest):
    """
    Check a design description against manufacturing rules and custom text extraction
    """
    prompt = normalize_vision(request.prompt)
    if not prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")

    return ValidateDesignResponse(
        success=True,
        production=validate_design_for_production(prompt),
        sanitized_prompt=sanitize_prompt_for_production(prompt),
        elements=extract_custom_elements(prompt),
        suggestions=suggest_prompt_improvements(prompt),
    )
