"""
Jewelry Pricing Service
Keyword spec parsing and cost estimation from metal spot prices
"""
import logging
import math
import re
from datetime import datetime, timezone
from typing import Dict, Optional

import httpx

from ..config import (
    MOCK_SPOT_PRICES,
    FALLBACK_SPOT_PRICES,
    SPOT_PRICE_TIMEOUT,
    settings,
)
from ..models import JewelrySpecs, PricingBreakdown, PricingDetail, SpotPrices

logger = logging.getLogger(__name__)

TROY_OUNCE_TO_GRAMS = 31.1035
LABOR_RATE = 85  # USD per hour, skilled bench jeweler
MARKUP = 2.2
DEFAULT_KARAT = 14
PEARL_PRICE_EACH = 12

GOLD_FAMILY = {"gold", "white-gold", "rose-gold"}

# grams, by type then size
BASE_WEIGHTS = {
    "ring": {"small": 2.5, "medium": 4.0, "large": 6.5},
    "necklace": {"small": 8.0, "medium": 15.0, "large": 25.0},
    "bracelet": {"small": 6.0, "medium": 12.0, "large": 20.0},
    "earrings": {"small": 2.0, "medium": 4.0, "large": 8.0},  # pair
    "pendant": {"small": 3.0, "medium": 6.0, "large": 12.0},
    "brooch": {"small": 4.0, "medium": 8.0, "large": 15.0},
}

COMPLEXITY_WEIGHT_MULTIPLIER = {
    "simple": 1.0,
    "moderate": 1.3,
    "complex": 1.6,
    "intricate": 2.0,
}

BASE_LABOR_HOURS = {
    "ring": {"simple": 3, "moderate": 6, "complex": 12, "intricate": 20},
    "necklace": {"simple": 4, "moderate": 8, "complex": 16, "intricate": 30},
    "bracelet": {"simple": 3, "moderate": 6, "complex": 12, "intricate": 25},
    "earrings": {"simple": 2, "moderate": 4, "complex": 8, "intricate": 15},
    "pendant": {"simple": 2, "moderate": 4, "complex": 8, "intricate": 15},
    "brooch": {"simple": 3, "moderate": 6, "complex": 12, "intricate": 20},
}

SIZE_LABOR_MULTIPLIER = {
    "small": 0.8,
    "medium": 1.0,
    "large": 1.4,
}

# USD per carat, varies widely by quality
PRICE_PER_CARAT = {
    "diamond": 5000,
    "ruby": 1500,
    "emerald": 2000,
    "sapphire": 1200,
    "pearl": 300,
}

PEARLS_PER_STRAND = {"small": 35, "medium": 45, "large": 55}

# "18ct gold" is a karat, not a stone weight
METAL_WORDS = r'(?:gold|white|rose|yellow|pink|platinum|silver)'

STRAND_PATTERNS = [
    (r'\b(?:multi|multiple)[- ]strands?\b', 3),
    (r'\b(?:triple|three)[- ]strands?\b', 3),
    (r'\b(?:double|two)[- ]strands?\b', 2),
    (r'\b(?:single|one)[- ]strands?\b', 1),
]


# ============================================================
# SPEC PARSING
# ============================================================

def parse_jewelry_specs(prompt: str) -> JewelrySpecs:
    """
    Parse jewelry specifications from a free-text prompt
    Keyword matching only, first match wins, never raises
    Args:
        prompt: Customer vision or AI-generated prompt
    Returns:
        JewelrySpecs with defaults for anything not mentioned
    """
    lower = (prompt or "").lower()

    jewelry_type = "ring"
    if "necklace" in lower:
        jewelry_type = "necklace"
    elif "bracelet" in lower:
        jewelry_type = "bracelet"
    elif "earring" in lower:
        jewelry_type = "earrings"
    elif "pendant" in lower:
        jewelry_type = "pendant"
    elif "brooch" in lower:
        jewelry_type = "brooch"

    material = "gold"
    if "platinum" in lower:
        material = "platinum"
    elif "silver" in lower or "sterling" in lower:
        material = "silver"
    elif "white gold" in lower:
        material = "white-gold"
    elif "rose gold" in lower or "pink gold" in lower:
        material = "rose-gold"

    karat = DEFAULT_KARAT
    ct_karat = re.search(r'(?<![\d.])(18|14|10)\s*(?:ct|carat)\s*(?=' + METAL_WORDS + r')', lower)
    if "18k" in lower or "18 karat" in lower:
        karat = 18
    elif "14k" in lower or "14 karat" in lower:
        karat = 14
    elif "10k" in lower or "10 karat" in lower:
        karat = 10
    elif ct_karat:
        karat = int(ct_karat.group(1))

    has_gemstones = any(
        word in lower
        for word in ("diamond", "ruby", "emerald", "sapphire", "pearl", "stone", "gem")
    )

    gemstone_type = None
    gemstone_carat = None
    if has_gemstones:
        for stone in ("diamond", "ruby", "emerald", "sapphire", "pearl"):
            if stone in lower:
                gemstone_type = stone
                break
        gemstone_carat = _extract_carat(lower, jewelry_type)

    complexity = "moderate"
    if "simple" in lower or "minimalist" in lower or "clean" in lower:
        complexity = "simple"
    elif "intricate" in lower or "ornate" in lower or "detailed" in lower:
        complexity = "intricate"
    elif "complex" in lower or "elaborate" in lower:
        complexity = "complex"

    size = "medium"
    if "delicate" in lower or "small" in lower or "petite" in lower:
        size = "small"
    elif "large" in lower or "statement" in lower or "chunky" in lower:
        size = "large"

    pearl_count = None
    if jewelry_type == "necklace" and gemstone_type == "pearl":
        pearl_count = _estimate_pearl_count(lower, size)

    return JewelrySpecs(
        type=jewelry_type,
        material=material,
        karat=karat if material in GOLD_FAMILY else None,
        hasGemstones=has_gemstones,
        gemstoneCarat=gemstone_carat,
        gemstoneType=gemstone_type,
        complexity=complexity,
        size=size,
        pearlCount=pearl_count,
    )


def _extract_carat(lower: str, jewelry_type: str) -> float:
    """Explicit carat weight, else a size-keyword guess"""
    match = re.search(r'(\d+(?:\.\d+)?)\s*(?:carats?|ct)\b(?!\s*' + METAL_WORDS + r')', lower)
    if match:
        return float(match.group(1))

    if "large" in lower or "statement" in lower:
        return 2.0 if jewelry_type == "ring" else 1.5
    if "small" in lower or "delicate" in lower:
        return 0.5
    return 1.0


def _estimate_pearl_count(lower: str, size: str) -> int:
    """Explicit pearl count, else strands x pearls per strand"""
    match = re.search(r'(\d+)\s+pearls\b', lower)
    if match:
        return int(match.group(1))

    strands = 1
    for pattern, count in STRAND_PATTERNS:
        if re.search(pattern, lower):
            strands = count
            break

    return strands * PEARLS_PER_STRAND[size]


# ============================================================
# SPOT PRICES
# ============================================================

def get_spot_prices() -> SpotPrices:
    """Static spot prices used when no live feed is configured"""
    return SpotPrices(
        **MOCK_SPOT_PRICES,
        lastUpdated=datetime.now(timezone.utc),
        source="mock",
    )


def _fallback_spot_prices() -> SpotPrices:
    return SpotPrices(
        **FALLBACK_SPOT_PRICES,
        lastUpdated=datetime.now(timezone.utc),
        source="fallback",
    )


async def fetch_spot_prices() -> SpotPrices:
    """
    Fetch live spot prices from the metals API
    Returns:
        Live prices, mock prices when no API key is set,
        or fallback prices when the request fails
    """
    if not settings.METALS_API_KEY:
        return get_spot_prices()

    try:
        async with httpx.AsyncClient(timeout=float(SPOT_PRICE_TIMEOUT)) as client:
            response = await client.get(
                settings.METALS_API_URL,
                params={
                    "access_key": settings.METALS_API_KEY,
                    "base": "USD",
                    "symbols": "XAU,XAG,XPT",
                }
            )
            response.raise_for_status()
            data = response.json()

        rates = data.get("rates") or {}
        # The feed quotes metal per USD, invert to USD per troy ounce
        prices = {
            "gold": 1 / float(rates["XAU"]),
            "silver": 1 / float(rates["XAG"]),
            "platinum": 1 / float(rates["XPT"]),
        }
        logger.info(f"Fetched live spot prices: gold ${prices['gold']:.2f}/ozt")
        return SpotPrices(**prices, lastUpdated=datetime.now(timezone.utc), source="live")

    except (httpx.HTTPError, KeyError, ValueError, TypeError, ZeroDivisionError) as e:
        logger.warning(f"Spot price fetch failed, using fallback prices: {e}")
        return _fallback_spot_prices()


# ============================================================
# COST ESTIMATION
# ============================================================

def estimate_material_weight(specs: JewelrySpecs) -> float:
    """Metal weight in grams from type/size, scaled by complexity"""
    base_weight = BASE_WEIGHTS[specs.type][specs.size]
    return base_weight * COMPLEXITY_WEIGHT_MULTIPLIER[specs.complexity]


def estimate_labor_hours(specs: JewelrySpecs) -> float:
    """Bench hours from type/complexity, scaled by size"""
    base_hours = BASE_LABOR_HOURS[specs.type][specs.complexity]
    return base_hours * SIZE_LABOR_MULTIPLIER[specs.size]


def calculate_gemstone_cost(specs: JewelrySpecs) -> float:
    """
    Gemstone cost in USD
    Pearl necklaces are priced per pearl, never below the per-carat figure
    """
    if not specs.hasGemstones or not specs.gemstoneCarat or not specs.gemstoneType:
        return 0.0

    carat_cost = specs.gemstoneCarat * PRICE_PER_CARAT[specs.gemstoneType]

    if specs.type == "necklace" and specs.gemstoneType == "pearl" and specs.pearlCount:
        return max(specs.pearlCount * PEARL_PRICE_EACH, carat_cost)

    return carat_cost


def material_price_per_gram(specs: JewelrySpecs, spot_prices: SpotPrices) -> float:
    """Per-gram metal price, gold adjusted for purity"""
    if specs.material in GOLD_FAMILY:
        karat = specs.karat or DEFAULT_KARAT
        return (spot_prices.gold / TROY_OUNCE_TO_GRAMS) * (karat / 24)
    if specs.material == "platinum":
        return spot_prices.platinum / TROY_OUNCE_TO_GRAMS
    return spot_prices.silver / TROY_OUNCE_TO_GRAMS


def calculate_jewelry_price(specs: JewelrySpecs, spot_prices: Optional[SpotPrices] = None) -> PricingBreakdown:
    """
    Calculate the retail price breakdown for a piece
    Args:
        specs: Parsed jewelry specifications
        spot_prices: Metal prices, defaults to the static spot prices
    Returns:
        PricingBreakdown with whole-dollar amounts
    """
    if spot_prices is None:
        spot_prices = get_spot_prices()

    material_weight = estimate_material_weight(specs)
    price_per_gram = material_price_per_gram(specs, spot_prices)
    material_cost = material_weight * price_per_gram

    labor_hours = estimate_labor_hours(specs)
    labor_cost = labor_hours * LABOR_RATE

    gemstone_cost = calculate_gemstone_cost(specs)

    subtotal = material_cost + labor_cost + gemstone_cost
    final_price = subtotal * MARKUP
    margin = final_price - subtotal

    logger.debug(
        f"Priced {specs.type} ({specs.material}, {specs.complexity}, {specs.size}): "
        f"subtotal ${subtotal:.2f}, final ${final_price:.2f}"
    )

    return PricingBreakdown(
        materialCost=_round_money(material_cost),
        laborCost=_round_money(labor_cost),
        gemstoneCost=_round_money(gemstone_cost),
        subtotal=_round_money(subtotal),
        margin=_round_money(margin),
        finalPrice=_round_money(final_price),
        breakdown=PricingDetail(
            materialWeight=round(material_weight, 2),
            materialPricePerGram=round(price_per_gram, 2),
            laborHours=round(labor_hours, 2),
            laborRate=LABOR_RATE,
            markup=MARKUP,
        ),
    )


def _round_money(value: float) -> int:
    # half-up, matching how quotes are shown to customers
    return int(math.floor(value + 0.5))


def pricing_summary(pricing: PricingBreakdown) -> Dict[str, int]:
    """Compact view used in logs"""
    return {
        "materials": pricing.materialCost,
        "labor": pricing.laborCost,
        "gemstones": pricing.gemstoneCost,
        "final": pricing.finalPrice,
    }
