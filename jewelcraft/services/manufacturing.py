"""
Manufacturing Rules
Checks that a design prompt describes something a bench jeweler can actually make
"""
import logging
import math
import re
from typing import Dict, List

from ..models import ProductionValidation

logger = logging.getLogger(__name__)

MANUFACTURING_RULES = {
    "materials": {
        "allowed": [
            "platinum", "14k gold", "18k gold", "22k gold", "white gold",
            "rose gold", "yellow gold", "sterling silver", "925 silver",
        ],
        "karats": [10, 14, 18, 22],
        "platinumPurity": [900, 950, 999],
    },
    "gemstones": {
        "types": [
            "diamond", "ruby", "sapphire", "emerald", "pearl", "aquamarine",
            "amethyst", "topaz", "garnet", "opal", "tanzanite", "morganite",
            "peridot", "citrine", "onyx", "turquoise",
        ],
        "maxCaratForType": {
            "diamond": 5.0,
            "ruby": 3.0,
            "sapphire": 4.0,
            "emerald": 3.0,
            "pearl": 15.0,  # mm
            "aquamarine": 5.0,
            "amethyst": 8.0,
            "topaz": 8.0,
            "garnet": 5.0,
            "opal": 4.0,
            "tanzanite": 3.0,
            "morganite": 4.0,
            "peridot": 5.0,
            "citrine": 8.0,
            "onyx": 10.0,
            "turquoise": 10.0,
        },
        "settingStyles": [
            "prong setting", "bezel setting", "channel setting", "pave setting",
            "tension setting", "halo setting", "cathedral setting",
            "flush setting", "cluster setting",
        ],
    },
    "techniques": {
        "allowed": [
            "hand forging", "lost wax casting", "engraving", "filigree",
            "granulation", "repoussé", "chasing", "enameling", "stone setting",
            "polishing", "rhodium plating", "brushed finish", "hammered texture",
            "milgrain detailing", "hand engraving", "laser engraving",
            "satin finish", "mirror polish", "antiquing/oxidation",
            "wire wrapping", "bezel setting", "prong setting",
            "channel setting", "pave setting",
        ],
        "forbidden": [
            "impossible geometry",
            "floating elements",
            "anti-gravity",
            "liquid metal",
            "holographic",
            "levitating",
            "impossible interlocking",
            "microscopic detail beyond 0.3mm",
            "unsupported overhangs",
            "physics-defying structures",
            "invisible settings",
            "magical properties",
            "self-assembling",
            "transparent metal",
            "flexible diamonds",
            "color-changing without treatment",
            "perpetual motion",
            "defying material properties",
        ],
    },
    "sizes": {
        "ringMinMax": (3, 15),  # US sizes
        "chainLengthMinMax": (14, 36),  # inches
        "braceletLengthMinMax": (6, 9),  # inches
    },
    "production": {
        "maxComplexityScore": 8,
        "minProductionDays": 3,
        "maxProductionDays": 14,
    },
    "structural": {
        "minMetalThickness": 1.5,  # mm
        "minProngDiameter": 0.8,  # mm
        "minDetailSize": 0.3,  # mm
        "minStoneSettingDepth": 0.6,  # ratio of stone height
        "maxAspectRatio": 5,
        "minWallThickness": 1.2,  # mm, hollow forms
    },
    "quality": {
        "surfaceFinishStandards": ["mirror polish", "satin finish", "brushed", "matte", "hammered"],
        "stoneQualityMinimum": "SI clarity for diamonds, eye-clean for colored stones",
        "metalPurityStandards": {
            "platinum": [900, 950, 999],
            "gold": [10, 14, 18, 22],
            "silver": [925, 950, 999],
        },
    },
}

STRUCTURAL_WARNINGS = {
    "ultra thin": "May not meet minimum thickness requirements (1.5mm)",
    "paper thin": "Not structurally sound for jewelry",
    "hair thin": "Below manufacturing capabilities",
    "microscopic": "Details must be minimum 0.3mm",
    "invisible": "All elements must have physical presence",
    "extremely delicate": "May not be durable for daily wear",
}

# technique -> extra production days
SLOW_TECHNIQUES = {
    "filigree": 3,
    "granulation": 3,
    "repoussé": 2,
    "enamel": 4,
    "hand engraving": 2,
    "pave setting": 3,
    "micro pave": 4,
}

UNSUPPORTED_SETTINGS = ["floating", "suspended", "unsupported", "hovering"]

PRODUCTION_REPLACEMENTS = {
    "floating": "delicately suspended with minimal wire support",
    "levitating": "elevated with fine metal support",
    "hovering": "raised on thin posts",
    "impossible": "intricate and complex",
    "holographic": "iridescent labradorite or opal",
    "liquid metal": "flowing organic curved design",
    "anti-gravity": "asymmetrical balanced",
    "invisible setting": "minimal bezel setting",
    "paper thin": "delicate 1.5mm thickness",
    "microscopic": "fine detailed 0.3mm",
    "magical": "exceptional craftsmanship",
    "perfect": "high quality SI clarity",
    "flawless": "VS clarity grade",
    "weightless": "lightweight hollow construction",
    "transparent metal": "polished reflective finish",
}


def validate_design_for_production(prompt: str) -> ProductionValidation:
    """
    Check a design prompt against the manufacturing rules
    Args:
        prompt: Design description
    Returns:
        ProductionValidation, invalid when any issue is found
    """
    issues: List[str] = []
    warnings: List[str] = []
    lower = (prompt or "").lower()

    for forbidden in MANUFACTURING_RULES["techniques"]["forbidden"]:
        if forbidden.lower() in lower:
            issues.append(f'Cannot manufacture: "{forbidden}" - not physically possible with real materials')

    for keyword, warning in STRUCTURAL_WARNINGS.items():
        if keyword in lower:
            warnings.append(warning)

    for technique, days in SLOW_TECHNIQUES.items():
        if technique in lower:
            warnings.append(f"{technique} adds {days}+ days to production timeline (high skill required)")

    for stone, max_carat in MANUFACTURING_RULES["gemstones"]["maxCaratForType"].items():
        match = re.search(rf'(\d+(?:\.\d+)?)\s*(?:carat|ct)\s*{stone}', lower)
        if match and float(match.group(1)) > max_carat:
            issues.append(
                f"{stone} {match.group(1)}ct exceeds practical maximum "
                f"({max_carat}ct for custom work) - extremely rare and expensive"
            )

    for term in UNSUPPORTED_SETTINGS:
        if term in lower:
            issues.append(f'"{term}" stones require physical support - suggest prong, bezel, or tension setting')

    if "platinum" in lower or "950" in lower:
        warnings.append("Platinum requires specialized equipment and significantly higher material cost")

    if re.search(r'\b(rainbow|multicolor|shifting|iridescent)\b', lower):
        warnings.append(
            "Color effects require specific gemstones or treatments - "
            "clarify if using opals, labradorite, or surface treatments"
        )

    if issues:
        logger.info(f"Design failed production checks with {len(issues)} issue(s)")

    return ProductionValidation(isValid=not issues, issues=issues, warnings=warnings)


def sanitize_prompt_for_production(prompt: str) -> str:
    """
    Rewrite impossible requests into manufacturable alternatives
    Args:
        prompt: Design description
    Returns:
        Production-safe prompt
    """
    sanitized = prompt or ""

    for forbidden, allowed in PRODUCTION_REPLACEMENTS.items():
        sanitized = re.sub(rf'\b{re.escape(forbidden)}\b', allowed, sanitized, flags=re.IGNORECASE)

    if not re.search(r'\b(cast|forged|fabricated|hand[- ]made|crafted)\b', sanitized, re.IGNORECASE):
        sanitized = sanitized + ", expertly handcrafted using traditional jewelry techniques"

    has_stones = re.search(r'\b(diamond|gemstone|stone|ruby|sapphire|emerald)\b', sanitized, re.IGNORECASE)
    has_setting = re.search(r'\b(prong|bezel|channel|pave|halo|tension|setting)\b', sanitized, re.IGNORECASE)
    if has_stones and not has_setting:
        sanitized = sanitized + ", set in secure professional setting"

    return sanitized.strip()


def calculate_complexity(prompt: str) -> int:
    """
    Score production complexity from keywords
    Returns:
        Integer score between 1 and maxComplexityScore
    """
    score = 1
    lower = (prompt or "").lower()

    if "intricate" in lower or "detailed" in lower:
        score += 2
    if "pave" in lower or "micro pave" in lower:
        score += 2
    if "engraving" in lower or "filigree" in lower:
        score += 1
    if "enamel" in lower:
        score += 2
    if "multiple" in lower or "many" in lower:
        score += 1

    gemstone_count = len(re.findall(r'stone|diamond|ruby|sapphire|emerald', lower))
    score += min(gemstone_count, 3)

    return min(score, MANUFACTURING_RULES["production"]["maxComplexityScore"])


def estimate_production_days(complexity_score: int) -> int:
    """Linear interpolation between min and max production days"""
    production: Dict[str, int] = MANUFACTURING_RULES["production"]
    days = math.ceil(
        production["minProductionDays"]
        + (complexity_score / production["maxComplexityScore"])
        * (production["maxProductionDays"] - production["minProductionDays"])
    )
    return min(days, production["maxProductionDays"])
