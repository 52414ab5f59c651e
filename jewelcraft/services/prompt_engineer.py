"""
Prompt Engineering Service
Design fingerprints and per-view image prompts that keep every view on the same piece
"""
import logging
import re
from typing import Dict, List, Optional

from ..models import DesignFingerprint, DimensionSpec, GemstoneSpec, MetalSpec, ViewSpec

logger = logging.getLogger(__name__)

# Image model prompt limit is 4000 characters
MAX_PROMPT_LENGTH = 3950
TRUNCATED_VISION_LENGTH = 200

DEFAULT_METAL = "14-karat yellow gold"
DEFAULT_FINISH = "mirror polish"
DEFAULT_RING_SIZE = "6.5 US"
FILLER_FEATURE = "Hand-finished with jeweler's precision"
MIN_FEATURES = 3
MAX_FEATURES = 5

ELEMENT_PATTERNS = {
    "metals": r"\b(rose gold|white gold|yellow gold|platinum|palladium|sterling silver|18k|14k|22k|24k)\b",
    "gemstones": (
        r"\b(diamond|ruby|sapphire|emerald|pearl|aquamarine|amethyst|topaz|garnet|opal|"
        r"tanzanite|morganite|turquoise|onyx)\b"
    ),
    "styles": (
        r"\b(vintage|modern|classic|art deco|minimalist|bohemian|contemporary|romantic|"
        r"glamorous|retro|victorian|edwardian|georgian)\b"
    ),
    "finishes": r"\b(polished|mirror|matte|brushed|hammered|textured|satin|florentine|sandblasted)\b",
    "types": (
        r"\b(ring|engagement ring|wedding band|eternity band|necklace|pendant|earring|earrings|"
        r"stud|hoop|bracelet|bangle|cuff|anklet|brooch)\b"
    ),
    "sizes": r"\b(delicate|bold|chunky|thin|thick|statement|dainty|substantial|petite|oversized)\b",
    "settings": r"\b(prong|bezel|channel|pave|pavé|tension|halo|cathedral|cluster|flush|invisible)\b",
}

# (delicate, regular, bold)
WEIGHTS = {
    "ring": ("2.5g", "3.8g", "6.5g"),
    "necklace": ("4.2g", "7.5g", "12g"),
    "earring": ("1.8g", "3.2g", "5.2g"),
    "bracelet": ("5.5g", "9.2g", "15g"),
}

THICKNESS = {
    "ring": "1.8mm",
    "necklace": "1.2mm chain",
    "earring": "1.5mm",
    "bracelet": "2.2mm",
}

DIMENSIONS = {
    "ring": {"length": "18mm", "width": "6mm", "height": "7.5mm"},
    "necklace": {"length": "450mm", "width": "8mm", "height": "12mm"},
    "earring": {"length": "25mm", "width": "8mm", "height": "6mm"},
    "bracelet": {"length": "180mm", "width": "12mm", "height": "8mm"},
}

VIEW_SPECS = {
    1: {
        "type": "HERO",
        "cameraAngle": "45° angle showing front and side, slight elevation for depth",
        "lighting": "Bright even studio lighting, soft shadows, all details visible",
        "background": "Clean white background, professional product photography",
        "purpose": "Clear product view showing exact appearance and details",
        "aesthetic": "Professional e-commerce product photography - clean, clear, accurate",
    },
    2: {
        "type": "TECHNICAL",
        "cameraAngle": "Straight-on front view at eye level, centered",
        "lighting": "Bright even front lighting, no shadows, maximum clarity",
        "background": "Pure white seamless background",
        "purpose": "Show exact front appearance as customer will see it",
        "aesthetic": "Product catalog photography - crystal clear, accurate colors",
    },
    3: {
        "type": "DETAIL",
        "cameraAngle": "Close macro view of the center stone and setting, slight top-down angle",
        "lighting": "Diffused ring light, controlled highlights on metal edges",
        "background": "Soft neutral grey gradient background",
        "purpose": "Show craftsmanship details, stone setting and surface finish",
        "aesthetic": "Macro detail photography - sharp textures, true colors",
    },
    4: {
        "type": "LIFESTYLE",
        "cameraAngle": "Three-quarter view resting on a display stand, low camera height",
        "lighting": "Warm natural window light with gentle fill",
        "background": "Warm neutral linen surface, softly out of focus",
        "purpose": "Show scale and presence of the piece in a styled setting",
        "aesthetic": "Editorial jewelry photography - elegant, natural, accurate",
    },
}

RENDERING_REQUIREMENTS = """RENDERING REQUIREMENTS:
- CLEAR PRODUCT PHOTOGRAPHY - customer must see exactly what they will receive
- ALL DETAILS VISIBLE - every gemstone, engraving, chain link, surface clearly shown
- ACCURATE COLORS - true metal tones (rose gold = pinkish, white gold = silver-white, yellow gold = golden)
- REALISTIC MATERIALS - proper metal reflectivity, gemstone sparkle, but not exaggerated
- SHARP FOCUS - entire piece in focus, no artistic blur
- PROFESSIONAL E-COMMERCE - like high-end online jeweler product photos
- NO artistic effects, hands, people, models, dramatic shadows, impossible geometry, cartoon sparkles"""


# ============================================================
# FINGERPRINT
# ============================================================

def _to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def generate_design_hash(text: str) -> str:
    """
    Stable 8-character id for a design description
    32-bit rolling hash (h * 31 + c), absolute value in base 36
    """
    h = 0
    for char in text:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h)).upper().rjust(8, "0")[:8]


def analyze_design_elements(prompt: str) -> Dict[str, List[str]]:
    """All keyword hits per category, in order of appearance"""
    return {
        name: [m.group(1) for m in re.finditer(pattern, prompt or "", re.IGNORECASE)]
        for name, pattern in ELEMENT_PATTERNS.items()
    }


def _jewelry_type(lower: str) -> str:
    if "necklace" in lower or "pendant" in lower:
        return "necklace"
    if "earring" in lower:
        return "earring"
    if "bracelet" in lower or "bangle" in lower or "cuff" in lower:
        return "bracelet"
    return "ring"


def get_metal_composition(metal_type: str) -> str:
    lower = metal_type.lower()
    if "18" in lower and "gold" in lower:
        return "Au 75%, alloy 25%"
    if "14" in lower and "gold" in lower:
        return "Au 58.3%, alloy 41.7%"
    if "platinum" in lower:
        return "Pt 95%, Ru 5%"
    if "silver" in lower:
        return "Ag 92.5%, Cu 7.5%"
    return "Au 58.3%, alloy 41.7%"


def extract_karat(metal_type: str) -> Optional[int]:
    match = re.search(r"(\d+)k", metal_type, re.IGNORECASE)
    return int(match.group(1)) if match else None


def get_reflectivity(finish: str) -> int:
    lower = finish.lower()
    if "mirror" in lower or "polish" in lower:
        return 85
    if "brushed" in lower or "satin" in lower:
        return 45
    if "matte" in lower or "hammered" in lower:
        return 25
    return 70


def estimate_weight(jewelry_type: str, size: Optional[str] = None) -> str:
    if jewelry_type not in WEIGHTS:
        return "4.0g"
    delicate, regular, bold = WEIGHTS[jewelry_type]
    lower = (size or "").lower()
    if "delicate" in lower or "dainty" in lower:
        return delicate
    if "bold" in lower or "chunky" in lower:
        return bold
    return regular


def infer_cut(gemstone: str) -> str:
    lower = gemstone.lower()
    if "emerald" in lower:
        return "emerald cut"
    if "sapphire" in lower:
        return "cushion cut"
    if "ruby" in lower:
        return "oval cut"
    return "round brilliant"


def infer_size(jewelry_type: str) -> str:
    return {"ring": "1.2ct", "necklace": "0.8ct", "earring": "0.6ct"}.get(jewelry_type, "1.0ct")


def infer_color(gemstone: str) -> str:
    lower = gemstone.lower()
    if "diamond" in lower:
        return "F (colorless)"
    if "sapphire" in lower:
        return "deep royal blue"
    if "ruby" in lower:
        return "pigeon blood red"
    if "emerald" in lower:
        return "vivid green"
    return "natural color"


def extract_engraved_name(vision: str) -> Optional[str]:
    """Quoted single word first, then a capitalized word after name/engraved/with/called/reads/says"""
    match = re.search(r"[\"'“”‘’`]([A-Za-z]+)[\"'“”‘’`]", vision)
    if not match:
        match = re.search(r"\b(?:name|engraved|with|called|reads|says)\s+([A-Z][a-z]+)\b", vision, re.IGNORECASE)
    return match.group(1) if match else None


def generate_distinctive_features(
    jewelry_type: str,
    styles: List[str],
    gemstones: List[GemstoneSpec],
    vision: str,
) -> List[str]:
    features: List[str] = []
    lower_styles = [s.lower() for s in styles]

    if any("vintage" in s or "art deco" in s for s in lower_styles):
        features.append("Milgrain beading along edges")
        features.append("Hand-engraved filigree patterns")

    if any("modern" in s or "contemporary" in s for s in lower_styles):
        features.append("Knife-edge profile with clean lines")
        features.append("Architectural geometric elements")

    if jewelry_type == "ring":
        features.append("Cathedral shoulders with delicate arches")
        if gemstones:
            features.append("Hidden surprise diamond beneath center stone")

    if jewelry_type == "necklace":
        features.append("Adjustable length with spring ring clasp")
        features.append("Delicate cable chain construction")

    name = extract_engraved_name(vision)
    if name:
        features.append(f'Engraved "{name}" inscription')
        logger.info(f'Name extracted for engraving: "{name}"')

    if any(g.role == "halo" for g in gemstones):
        features.append("Halo creates 30% larger visual appearance")

    while len(features) < MIN_FEATURES:
        features.append(FILLER_FEATURE)

    return features[:MAX_FEATURES]


def create_design_fingerprint(user_vision: str, sanitized_vision: str) -> DesignFingerprint:
    """
    Build the fingerprint every view prompt is generated from
    Args:
        user_vision: Customer's original description
        sanitized_vision: Production-safe rewrite of the vision
    Returns:
        DesignFingerprint keyed by a hash of the sanitized vision
    """
    elements = analyze_design_elements(sanitized_vision)
    lower = sanitized_vision.lower()
    jewelry_type = _jewelry_type(lower)

    metal_type = elements["metals"][0] if elements["metals"] else DEFAULT_METAL
    finish = elements["finishes"][0] if elements["finishes"] else DEFAULT_FINISH
    size_word = elements["sizes"][0] if elements["sizes"] else None

    metal = MetalSpec(
        type=metal_type,
        composition=get_metal_composition(metal_type),
        karat=extract_karat(metal_type),
        finish=finish,
        reflectivity=get_reflectivity(finish),
        weight=estimate_weight(jewelry_type, size_word),
        thickness=THICKNESS.get(jewelry_type, "1.5mm"),
    )

    gemstones: List[GemstoneSpec] = []
    if elements["gemstones"]:
        primary = elements["gemstones"][0]
        gemstones.append(GemstoneSpec(
            type=primary,
            count=1,
            role="primary",
            cut=infer_cut(primary),
            size=infer_size(jewelry_type),
            clarity="VS1" if "diamond" in primary.lower() else "eye-clean",
            color=infer_color(primary),
            setting=elements["settings"][0] if elements["settings"] else "prong",
            placement="center",
            prongCount=6,
        ))

        has_halo = "halo" in lower
        if has_halo or "pave" in lower or "pavé" in lower:
            gemstones.append(GemstoneSpec(
                type="diamond",
                count=20 if has_halo else 30,
                role="halo" if has_halo else "accent",
                cut="round brilliant",
                size="1.5mm",
                setting="micro-pave",
                placement="surrounding center stone" if has_halo else "band sides",
            ))

    dims = DIMENSIONS.get(jewelry_type, {})
    dimensions = DimensionSpec(
        length=dims.get("length", "10mm"),
        width=dims.get("width", "10mm"),
        height=dims.get("height", "10mm"),
        weight=metal.weight,
        ringSize=DEFAULT_RING_SIZE if jewelry_type == "ring" else None,
    )

    return DesignFingerprint(
        id=generate_design_hash(sanitized_vision),
        metal=metal,
        gemstones=gemstones,
        dimensions=dimensions,
        distinctiveFeatures=generate_distinctive_features(
            jewelry_type, elements["styles"], gemstones, sanitized_vision
        ),
        jewelryType=jewelry_type,
        styleNotes=elements["styles"],
    )


# ============================================================
# VIEW PROMPTS
# ============================================================

def get_view_spec(view_number: int) -> ViewSpec:
    """Camera setup for a view, views past the fourth reuse the technical setup"""
    spec = VIEW_SPECS.get(view_number, VIEW_SPECS[2])
    return ViewSpec(viewNumber=view_number, **spec)


def _gemstone_inventory(gemstones: List[GemstoneSpec]) -> str:
    if not gemstones:
        return "  No gemstones - metal only design"

    blocks = []
    for g in gemstones:
        details = f"Cut: {g.cut} | Size: {g.size}"
        if g.clarity:
            details += f" | Clarity: {g.clarity}"
        if g.color:
            details += f" | Color: {g.color}"
        setting = g.setting + (f" with {g.prongCount} prongs" if g.prongCount else "")
        blocks.append(
            f"  - {g.count}x {g.type}{'s' if g.count > 1 else ''}\n"
            f"    {details}\n"
            f"    Setting: {setting}\n"
            f"    Position: {g.placement}"
        )
    return "\n".join(blocks)


def _photography_block(view: ViewSpec) -> str:
    aperture = "f/8 for sharp focus" if view.type == "HERO" else "f/11 for maximum sharpness"
    return (
        f"CAMERA: Professional product camera, 100mm macro, {aperture}, {view.cameraAngle}\n"
        f"LIGHTING: {view.lighting}, true color reproduction\n"
        f"BACKGROUND: {view.background}, jewelry clearly stands out\n"
        f"STYLE: {view.purpose} | {view.aesthetic}"
    )


def _render_prompt(vision: str, fingerprint: DesignFingerprint, view: ViewSpec, total_views: int) -> str:
    metal = fingerprint.metal
    dims = fingerprint.dimensions
    features = "; ".join(fingerprint.distinctiveFeatures)
    size_text = f"{dims.length}x{dims.width}x{dims.height}"
    ring_size = f", size {dims.ringSize}" if dims.ringSize else ""

    consistency = ""
    if view.viewNumber > 1:
        stones = ", ".join(f"{g.count}x {g.type}" for g in fingerprint.gemstones) or "no stones"
        consistency = (
            "\nCRITICAL: EXACT SAME piece from View 1 - only camera angle changed\n"
            f"VERIFY: {metal.type} {metal.finish} | {stones} | {size_text} | {features}\n"
            "Cannot alter jewelry - only photographing from different angle."
        )

    prompt = (
        f"LUXURY JEWELRY SPEC | ID: {fingerprint.id} | View {view.viewNumber}/{total_views}\n\n"
        f"DESIGN: {vision}\n\n"
        f"EXACT SPECIFICATIONS (same in all views):\n"
        f"Metal: {metal.type}, {metal.finish} ({metal.reflectivity}% reflectivity), {metal.weight}\n"
        f"{_gemstone_inventory(fingerprint.gemstones)}\n"
        f"Dimensions: {size_text}{ring_size}\n"
        f"Features: {features}\n\n"
        f"{_photography_block(view)}\n\n"
        f"{RENDERING_REQUIREMENTS}\n"
        f"{consistency}\n\n"
        f"Create clear professional product photo of {fingerprint.jewelryType} "
        f"showing exact appearance for online jewelry shopping."
    )
    return prompt.strip()


def build_view_prompt(
    user_vision: str,
    fingerprint: DesignFingerprint,
    view: ViewSpec,
    total_views: int = 2,
) -> str:
    """
    Build the image prompt for one view
    Args:
        user_vision: Customer's description, embedded verbatim when it fits
        fingerprint: Shared design fingerprint
        view: Camera setup for this view
        total_views: Number of views in the request
    Returns:
        Prompt no longer than MAX_PROMPT_LENGTH characters
    """
    prompt = _render_prompt(user_vision, fingerprint, view, total_views)

    if len(prompt) > MAX_PROMPT_LENGTH:
        logger.warning(f"Prompt too long ({len(prompt)} chars), shortening design vision")
        vision = user_vision
        if len(vision) > TRUNCATED_VISION_LENGTH:
            vision = vision[:TRUNCATED_VISION_LENGTH] + "..."
        prompt = _render_prompt(vision, fingerprint, view, total_views)

    if len(prompt) > MAX_PROMPT_LENGTH:
        logger.warning(f"Hard truncation applied at {MAX_PROMPT_LENGTH} characters")
        prompt = prompt[:MAX_PROMPT_LENGTH]

    logger.debug(f"Final prompt length for view {view.viewNumber}: {len(prompt)} characters")
    return prompt
