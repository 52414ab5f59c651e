"""
Design Generation Service
OpenAI DALL-E 3 views plus GPT-4o manufacturing specifications
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from openai import AsyncOpenAI, OpenAIError

from ..config import (
    IMAGE_QUALITY,
    IMAGE_REQUEST_DELAY,
    IMAGE_SIZE,
    IMAGE_STYLE,
    MAX_VIEWS,
    MIN_VIEWS,
    OPENAI_IMAGE_MODEL,
    OPENAI_SPEC_MODEL,
    OPENAI_TIMEOUT,
    SPEC_FALLBACK_TEXT,
    SPEC_MAX_TOKENS,
    SPEC_PROMPT_TEMPLATE,
    SPEC_TEMPERATURE,
    VISION_MAX_LENGTH,
    VISION_MIN_LENGTH,
    settings,
)
from ..errors import ConfigurationError, GenerationError
from ..models import DesignFingerprint, GenerateDesignResponse, GeneratedImage, ViewSpec
from ..utils.sanitizers import clean_specifications, normalize_vision
from .consistency import generate_consistency_report, validate_consistency
from .design_validator import (
    generate_validation_report,
    validate_prompt_inclusion,
    validate_revised_prompt,
)
from .image_storage import delete_design_images, store_design_images
from .manufacturing import (
    calculate_complexity,
    estimate_production_days,
    sanitize_prompt_for_production,
    validate_design_for_production,
)
from .pricing import calculate_jewelry_price, fetch_spot_prices, parse_jewelry_specs, pricing_summary
from .prompt_engineer import build_view_prompt, create_design_fingerprint, get_view_spec

logger = logging.getLogger(__name__)

# Initialize OpenAI client
client: Optional[AsyncOpenAI] = None


def initialize_client():
    """Initialize OpenAI client with API key"""
    global client
    api_key = settings.OPENAI_API_KEY
    if not api_key:
        logger.warning("OPENAI_API_KEY not set - design generation will fail")
        return False
    client = AsyncOpenAI(api_key=api_key, timeout=float(OPENAI_TIMEOUT))
    return True


def validate_vision(user_vision: Optional[str]) -> str:
    """
    Normalize and length-check a customer vision
    Raises:
        ValueError: Too short or too long
    """
    vision = normalize_vision(user_vision or "")
    if len(vision) < VISION_MIN_LENGTH:
        raise ValueError("Please provide a detailed description of your jewelry vision")
    if len(vision) > VISION_MAX_LENGTH:
        raise ValueError(f"Design description must be under {VISION_MAX_LENGTH} characters")
    return vision


async def generate_view_image(prompt: str, view: ViewSpec, delay: float = 0.0) -> GeneratedImage:
    """
    Generate one view, failures are captured on the result instead of raised
    Args:
        prompt: Full image prompt
        view: Camera setup
        delay: Seconds to wait first, staggers concurrent calls
    """
    if delay:
        await asyncio.sleep(delay)

    logger.info(f"Generating view {view.viewNumber} ({view.type})")
    try:
        response = await client.images.generate(
            model=OPENAI_IMAGE_MODEL,
            prompt=prompt,
            n=1,
            size=IMAGE_SIZE,
            quality=IMAGE_QUALITY,
            style=IMAGE_STYLE,
        )
        data = response.data[0] if response.data else None
        url = getattr(data, "url", None)
        if not url:
            raise GenerationError("Image API returned no URL")

        return GeneratedImage(
            type=view.type,
            view=view.viewNumber,
            url=url,
            prompt=prompt,
            revised_prompt=getattr(data, "revised_prompt", None),
        )

    except (OpenAIError, GenerationError) as e:
        logger.error(f"Error generating view {view.viewNumber}: {e}")
        return GeneratedImage(type=view.type, view=view.viewNumber, prompt=prompt, error=str(e))


async def generate_specifications(user_vision: str) -> str:
    """GPT-4o manufacturing specifications, placeholder text on any failure"""
    try:
        response = await client.chat.completions.create(
            model=OPENAI_SPEC_MODEL,
            messages=[{"role": "user", "content": SPEC_PROMPT_TEMPLATE.format(vision=user_vision)}],
            max_tokens=SPEC_MAX_TOKENS,
            temperature=SPEC_TEMPERATURE,
        )
        content = response.choices[0].message.content
        if not content:
            raise GenerationError("OpenAI returned empty response")
        return clean_specifications(content)

    except (OpenAIError, GenerationError, IndexError, AttributeError) as e:
        logger.error(f"Error generating specifications: {e}")
        return SPEC_FALLBACK_TEXT


def _revised_prompt_for(images: List[GeneratedImage], view_number: int) -> Optional[str]:
    for image in images:
        if image.view == view_number and image.url:
            return image.revised_prompt
    return None


async def generate_design(
    user_vision: str,
    views: int = MIN_VIEWS,
    user_id: Optional[str] = None,
    persist: bool = False,
    db: Optional[Any] = None,
    design_id: Optional[str] = None,
) -> GenerateDesignResponse:
    """
    Generate a complete design: views, validation reports, pricing and specifications
    Args:
        user_vision: Customer's description
        views: Number of views, 2 to 4
        user_id: Owner for stored images
        persist: Copy images to Supabase Storage
        db: Supabase client, required for persistence
        design_id: Existing design to regenerate, its stored views are replaced
    Returns:
        GenerateDesignResponse
    Raises:
        ValueError: Invalid vision or view count
        ConfigurationError: OpenAI is not configured
        GenerationError: No view could be generated
    """
    vision = validate_vision(user_vision)
    if not MIN_VIEWS <= views <= MAX_VIEWS:
        raise ValueError(f"views must be between {MIN_VIEWS} and {MAX_VIEWS}")
    if design_id is not None:
        try:
            design_id = str(uuid.UUID(design_id))
        except ValueError:
            raise ValueError("design_id must be a UUID")
    # only an owner can regenerate in place, anonymous folders are shared
    replacing = bool(design_id and user_id)

    if client is None and not initialize_client():
        raise ConfigurationError("OpenAI API key not configured")

    logger.info(f"Generating jewelry design ({views} views) for: {vision[:100]}...")
    warnings: List[str] = []

    # Production rules first, generation always uses the production-safe vision
    production = validate_design_for_production(vision)
    warnings.extend(production.issues)
    sanitized_vision = sanitize_prompt_for_production(vision)

    fingerprint: DesignFingerprint = create_design_fingerprint(vision, sanitized_vision)
    view_specs = [get_view_spec(n) for n in range(1, views + 1)]
    prompts = [build_view_prompt(sanitized_vision, fingerprint, spec, views) for spec in view_specs]
    logger.info(f"Design fingerprint {fingerprint.id}: {fingerprint.jewelryType}, {fingerprint.metal.type}")

    results = await asyncio.gather(*[
        generate_view_image(prompt, spec, delay=idx * IMAGE_REQUEST_DELAY)
        for idx, (prompt, spec) in enumerate(zip(prompts, view_specs))
    ])

    images = [img for img in results if img.url]
    failed = [img for img in results if not img.url]
    logger.info(f"Generated {len(images)}/{len(results)} images successfully")

    if not images:
        raise GenerationError("Failed to generate any images. Please try again.")
    if failed:
        warnings.append(f"{len(failed)} image(s) failed to generate")

    # Custom text checks against our prompt and each revised prompt
    text_validation = [validate_prompt_inclusion(vision, prompts[0], fingerprint)]
    text_validation.extend(validate_revised_prompt(vision, img.revised_prompt) for img in images)
    logger.info(generate_validation_report(vision, prompts[0], [img.revised_prompt for img in images], fingerprint))

    consistency = validate_consistency(
        fingerprint,
        _revised_prompt_for(images, 1),
        _revised_prompt_for(images, 2),
        vision,
    )

    if not replacing:
        design_id = str(uuid.uuid4())
    logger.info(generate_consistency_report(consistency, design_id))
    if not consistency.isConsistent:
        warnings.append(consistency.summary)

    specs = parse_jewelry_specs(vision)
    spot_prices = await fetch_spot_prices()
    pricing = calculate_jewelry_price(specs, spot_prices)
    complexity = calculate_complexity(sanitized_vision)
    production_days = estimate_production_days(complexity)
    logger.info(f"Pricing for {design_id}: {pricing_summary(pricing)}")

    specifications = await generate_specifications(vision)

    if persist:
        if db is None:
            warnings.append("Image storage is not configured - images were not saved")
        else:
            if replacing:
                cleared = await asyncio.to_thread(delete_design_images, db, design_id, user_id)
                logger.info(f"Replacing design {design_id}: removed {cleared['deletedCount']} stored views")
            stored = await store_design_images(
                db,
                [{"url": img.url, "viewNumber": img.view} for img in images],
                design_id,
                user_id,
            )
            by_view = {s["viewNumber"]: s for s in stored}
            for img in images:
                result = by_view.get(img.view) or {}
                img.storage_url = result.get("storageUrl")
                if result.get("error"):
                    warnings.append(f"View {img.view} could not be stored")

    return GenerateDesignResponse(
        success=True,
        design_id=design_id,
        images=images,
        specifications=specifications,
        user_vision=vision,
        fingerprint=fingerprint,
        pricing=pricing,
        specs=specs,
        complexity=complexity,
        production_days=production_days,
        production=production,
        consistency=consistency,
        text_validation=text_validation,
        generated_at=datetime.now(timezone.utc),
        warnings=warnings,
    )


# Initialize on module load
initialize_client()
