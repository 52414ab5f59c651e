"""
Custom Text Validator
Makes sure names, engravings and quoted text survive into the image prompts
"""
import logging
import re
from typing import List, Optional, Sequence

from ..models import DesignElements, DesignFingerprint, ExtractedElements, ValidationResult

logger = logging.getLogger(__name__)

# straight, curly and backtick quotes are all accepted as delimiters
QUOTE = "[\"'“”‘’`]"
NOT_QUOTE = "[^\"'“”‘’`]"

QUOTED_TEXT_PATTERN = re.compile(f"{QUOTE}({NOT_QUOTE}+){QUOTE}")

NAME_PATTERNS = [
    re.compile(rf"\b(?:name|named|called)\s+{QUOTE}?([A-Z][a-z]+){QUOTE}?", re.IGNORECASE),
    re.compile(rf"\bengraved?\s+(?:with\s+)?{QUOTE}?([A-Z][a-z]+){QUOTE}?", re.IGNORECASE),
    re.compile(rf"\bwith\s+{QUOTE}?([A-Z][a-z]+){QUOTE}?\s+engraved", re.IGNORECASE),
]

ENGRAVING_PATTERNS = [
    re.compile(rf"\bengraved?\s+(?:with\s+)?{QUOTE}({NOT_QUOTE}+){QUOTE}", re.IGNORECASE),
    re.compile(rf"\binscription\s+{QUOTE}({NOT_QUOTE}+){QUOTE}", re.IGNORECASE),
    re.compile(rf"\btext\s+{QUOTE}({NOT_QUOTE}+){QUOTE}", re.IGNORECASE),
]

NUMBER_PATTERN = re.compile(r"\b(\d{1,4}(?:[/-]\d{1,2}(?:[/-]\d{1,4})?)?)\b")

SPECIAL_INSTRUCTIONS = ["initials", "monogram", "signature", "message", "coordinates", "date"]

TEXT_STYLE_PATTERN = re.compile(r"\b(script|serif|sans-serif|cursive|block)\b", re.IGNORECASE)


def _append_unique(values: List[str], value: str) -> None:
    if value and value not in values:
        values.append(value)


def extract_custom_elements(user_vision: str) -> DesignElements:
    """
    Pull custom text, names, engravings, numbers and special requests out of a vision
    Args:
        user_vision: Customer's free-text description
    Returns:
        DesignElements, lists keep first-seen order
    """
    vision = user_vision or ""
    elements = DesignElements()

    elements.customText = [m.group(1) for m in QUOTED_TEXT_PATTERN.finditer(vision)]

    for pattern in NAME_PATTERNS:
        for m in pattern.finditer(vision):
            _append_unique(elements.names, m.group(1))

    for pattern in ENGRAVING_PATTERNS:
        for m in pattern.finditer(vision):
            _append_unique(elements.engravings, m.group(1))

    elements.numbers = [m.group(1) for m in NUMBER_PATTERN.finditer(vision)]

    for word in SPECIAL_INSTRUCTIONS:
        if re.search(rf"\b{word}\b", vision, re.IGNORECASE):
            _append_unique(elements.specialInstructions, word)

    return elements


def _extracted(elements: DesignElements) -> ExtractedElements:
    return ExtractedElements(
        customText=elements.customText,
        numbers=elements.numbers,
        specialRequests=elements.specialInstructions,
    )


def validate_prompt_inclusion(
    user_vision: str,
    final_prompt: str,
    fingerprint: Optional[DesignFingerprint] = None,
) -> ValidationResult:
    """
    Check that every custom element of the vision made it into our generation prompt
    Args:
        user_vision: Customer's description
        final_prompt: Prompt sent to the image model
        fingerprint: Design fingerprint whose distinctive features should carry engravings
    Returns:
        ValidationResult, errors for missing text or names
    """
    errors: List[str] = []
    warnings: List[str] = []
    elements = extract_custom_elements(user_vision)
    prompt = final_prompt or ""
    lower_prompt = prompt.lower()

    for text in elements.customText:
        if text not in prompt:
            errors.append(f'Custom text "{text}" not found in generation prompt')

    for name in elements.names:
        if name not in prompt:
            errors.append(f'Name "{name}" not found in generation prompt - CRITICAL for personalization')

    features = [f.lower() for f in fingerprint.distinctiveFeatures] if fingerprint else []
    for engraving in elements.engravings:
        if not any(engraving.lower() in feature for feature in features):
            warnings.append(f'Engraving "{engraving}" should be in distinctive features for consistency')

    for number in elements.numbers:
        if number not in prompt:
            warnings.append(f'Number "{number}" not explicitly mentioned in prompt')

    for instruction in elements.specialInstructions:
        if instruction not in lower_prompt:
            warnings.append(f'Special instruction "{instruction}" may not be clear in prompt')

    return ValidationResult(
        isValid=not errors,
        errors=errors,
        warnings=warnings,
        extractedElements=_extracted(elements),
    )


def validate_revised_prompt(user_vision: str, revised_prompt: Optional[str]) -> ValidationResult:
    """
    Check the image model's rewritten prompt still carries the custom text
    Args:
        user_vision: Customer's description
        revised_prompt: revised_prompt returned by the image API, may be None
    Returns:
        ValidationResult, always valid when there is nothing to check
    """
    errors: List[str] = []
    warnings: List[str] = []
    elements = extract_custom_elements(user_vision)

    if not revised_prompt:
        warnings.append("No revised prompt from DALL-E to validate")
        return ValidationResult(isValid=True, errors=errors, warnings=warnings, extractedElements=_extracted(elements))

    lower_revised = revised_prompt.lower()

    for text in elements.customText:
        if text.lower() not in lower_revised:
            errors.append(f'DALL-E did NOT include custom text "{text}" - may not appear in image!')

    for name in elements.names:
        if name.lower() not in lower_revised:
            errors.append(f'CRITICAL: DALL-E did NOT include name "{name}" - will likely be missing from image!')

    if elements.customText or elements.names:
        mentions_text = any(word in lower_revised for word in ("text", "engraved", "inscription", "name"))
        if not mentions_text:
            warnings.append("DALL-E may not have understood that text/engraving is required")

    return ValidationResult(
        isValid=not errors,
        errors=errors,
        warnings=warnings,
        extractedElements=_extracted(elements),
    )


def generate_validation_report(
    user_vision: str,
    final_prompt: str,
    revised_prompts: Sequence[Optional[str]],
    fingerprint: Optional[DesignFingerprint] = None,
) -> str:
    """Multi-line report for the generation log"""
    elements = extract_custom_elements(user_vision)
    inclusion = validate_prompt_inclusion(user_vision, final_prompt, fingerprint)

    lines = ["", "=" * 70, "CUSTOM TEXT VALIDATION REPORT", "=" * 70, "", "EXTRACTED CUSTOM ELEMENTS:"]
    if elements.customText:
        lines.append("   Custom Text: " + ", ".join(f'"{t}"' for t in elements.customText))
    if elements.names:
        lines.append("   Names: " + ", ".join(f'"{n}"' for n in elements.names))
    if elements.engravings:
        lines.append("   Engravings: " + ", ".join(f'"{e}"' for e in elements.engravings))
    if elements.numbers:
        lines.append("   Numbers: " + ", ".join(elements.numbers))
    if elements.specialInstructions:
        lines.append("   Special Instructions: " + ", ".join(elements.specialInstructions))
    if not (elements.customText or elements.names or elements.engravings or elements.numbers):
        lines.append("   No custom text or names detected")

    lines += ["", "PROMPT INCLUSION CHECK:"]
    if inclusion.isValid:
        lines.append("   All custom elements included in generation prompt")
    else:
        lines += [f"   x {err}" for err in inclusion.errors]

    if inclusion.warnings:
        lines += ["", "WARNINGS:"]
        lines += [f"   - {warn}" for warn in inclusion.warnings]

    lines += ["", "DALL-E UNDERSTANDING CHECK:"]
    for idx, revised in enumerate(revised_prompts, start=1):
        result = validate_revised_prompt(user_vision, revised)
        lines.append(f"   View {idx}:")
        if result.isValid:
            lines.append("   DALL-E correctly understood custom text requirements")
        else:
            lines += [f"   {err}" for err in result.errors]

    lines += ["", "=" * 70, ""]
    return "\n".join(lines)


def suggest_prompt_improvements(user_vision: str) -> List[str]:
    """Tips for phrasing a vision so the custom text renders reliably"""
    vision = user_vision or ""
    suggestions: List[str] = []
    elements = extract_custom_elements(vision)

    if elements.names and not elements.customText:
        suggestions.append('Put custom names in quotes for clarity, e.g., "Mirja" instead of just Mirja')

    if "engrav" in vision.lower() and not elements.customText:
        suggestions.append('Specify exactly what text to engrave in quotes, e.g., engraved "Forever"')

    if len(elements.names) > 1:
        suggestions.append('Clarify where each name should appear, e.g., "Sarah" on left pendant, "Michael" on right')

    if elements.customText and not TEXT_STYLE_PATTERN.search(vision):
        suggestions.append('Consider specifying text style, e.g., "in elegant script font" or "in modern sans-serif"')

    return suggestions
