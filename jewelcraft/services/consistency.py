"""
Cross-View Consistency Checker
Compares the image model's revised prompts to confirm every view shows the same piece
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..models import ConsistencyCheck, ConsistencyValidation, DesignFingerprint, Severity

logger = logging.getLogger(__name__)

METAL_COLORS = ["rose gold", "white gold", "yellow gold", "platinum", "silver"]
METAL_TYPES = ["gold", "platinum", "silver"]
GEMSTONES = ["diamond", "ruby", "sapphire", "emerald", "pearl", "topaz", "amethyst", "opal"]
COLOR_WORDS = ["pink", "pinkish", "white", "yellow", "golden", "silver", "rose", "red", "blue", "green"]
QUANTITY_WORDS = ["single", "pair", "multiple", "several"]

WORD_TO_NUMBER = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

NUMBER_PATTERN = re.compile(r"\b(one|two|three|four|five|six|seven|eight|nine|ten|\d+)\b", re.IGNORECASE)
CHAIN_PATTERN = re.compile(r"\b(one|two|three|four|five|\d+)\s+(?:delicate\s+)?chains?\b", re.IGNORECASE)
QUOTED_TEXT_PATTERN = re.compile("[\"'“”‘’`]([^\"'“”‘’`]+)[\"'“”‘’`]")

# element names whose lists must match exactly, the rest compare as sets
EXACT_ELEMENTS = {"Custom Text", "Chain Count"}


def _to_number(token: str) -> int:
    return WORD_TO_NUMBER.get(token.lower()) or int(token)


def extract_elements_from_prompt(revised_prompt: Optional[str]) -> Dict[str, List[Any]]:
    """
    Pull comparable design attributes out of one revised prompt
    Args:
        revised_prompt: Prompt text returned for one view
    Returns:
        Dict of attribute name -> list of values, all empty when there is no prompt
    """
    if not revised_prompt:
        return {
            "metalColor": [],
            "metalType": [],
            "gemstones": [],
            "customText": [],
            "chains": [],
            "numbers": [],
            "colors": [],
            "quantities": [],
        }

    lower = revised_prompt.lower()

    return {
        "metalColor": [c for c in METAL_COLORS if c in lower],
        "metalType": [t for t in METAL_TYPES if t in lower],
        "gemstones": [g for g in GEMSTONES if g in lower],
        "customText": [m.group(1) for m in QUOTED_TEXT_PATTERN.finditer(revised_prompt)],
        "chains": [_to_number(m.group(1)) for m in CHAIN_PATTERN.finditer(revised_prompt)],
        "numbers": [_to_number(m.group(1)) for m in NUMBER_PATTERN.finditer(revised_prompt)],
        "colors": [c for c in COLOR_WORDS if c in lower],
        "quantities": [q for q in QUANTITY_WORDS if q in lower],
    }


def compare_elements(element: str, view1: List[Any], view2: List[Any], severity: Severity) -> ConsistencyCheck:
    """Build a check record, empty lists render as "(none)" """
    if element in EXACT_ELEMENTS:
        matches = sorted(view1, key=str) == sorted(view2, key=str)
    else:
        matches = {str(v).lower() for v in view1} == {str(v).lower() for v in view2}

    return ConsistencyCheck(
        element=element,
        view1=", ".join(str(v) for v in view1) or "(none)",
        view2=", ".join(str(v) for v in view2) or "(none)",
        matches=matches,
        severity=severity,
    )


def validate_consistency(
    fingerprint: Optional[DesignFingerprint],
    revised_prompt1: Optional[str],
    revised_prompt2: Optional[str],
    user_vision: str = "",
) -> ConsistencyValidation:
    """
    Diff the design attributes of two views
    Args:
        fingerprint: Fingerprint the views were generated from
        revised_prompt1: Revised prompt of the first view
        revised_prompt2: Revised prompt of the second view
        user_vision: Customer's description
    Returns:
        ConsistencyValidation, consistent only when no critical check fails
    """
    if not revised_prompt1 or not revised_prompt2:
        return ConsistencyValidation(
            isConsistent=False,
            consistencyScore=0,
            checks=[],
            criticalIssues=["Missing DALL-E revised prompts - cannot validate consistency"],
            warnings=[],
            summary="Unable to validate - no revised prompts available",
        )

    first = extract_elements_from_prompt(revised_prompt1)
    second = extract_elements_from_prompt(revised_prompt2)

    checks: List[ConsistencyCheck] = []
    critical_issues: List[str] = []
    warnings: List[str] = []

    metal_color = compare_elements("Metal Color", first["metalColor"], second["metalColor"], "critical")
    checks.append(metal_color)
    if not metal_color.matches:
        critical_issues.append(
            f"CRITICAL: Metal color differs between views "
            f"(View 1: {metal_color.view1}, View 2: {metal_color.view2})"
        )

    if first["customText"] or second["customText"]:
        text_check = compare_elements("Custom Text", first["customText"], second["customText"], "critical")
        checks.append(text_check)
        if not text_check.matches:
            critical_issues.append(
                f'CRITICAL: Custom text/names differ (View 1: "{text_check.view1}", View 2: "{text_check.view2}")'
            )

    if first["chains"] or second["chains"]:
        chain_check = compare_elements("Chain Count", first["chains"], second["chains"], "critical")
        checks.append(chain_check)
        if not chain_check.matches:
            critical_issues.append(
                f"CRITICAL: Different number of chains (View 1: {chain_check.view1}, View 2: {chain_check.view2})"
            )

    gemstone_check = compare_elements("Gemstone Types", first["gemstones"], second["gemstones"], "critical")
    checks.append(gemstone_check)
    if not gemstone_check.matches and (first["gemstones"] or second["gemstones"]):
        critical_issues.append(
            f"CRITICAL: Different gemstones (View 1: {gemstone_check.view1}, View 2: {gemstone_check.view2})"
        )

    metal_type = compare_elements("Metal Type", first["metalType"], second["metalType"], "warning")
    checks.append(metal_type)
    if not metal_type.matches:
        warnings.append(f"Metal type may differ (View 1: {metal_type.view1}, View 2: {metal_type.view2})")

    color_check = compare_elements("Color Descriptions", first["colors"], second["colors"], "warning")
    checks.append(color_check)
    if not color_check.matches:
        warnings.append(
            f"Color descriptions differ slightly (View 1: {color_check.view1}, View 2: {color_check.view2})"
        )

    score = consistency_score(checks)
    is_consistent = not critical_issues

    if is_consistent:
        summary = f"CONSISTENT: Both views show the same jewelry ({score}% match)"
        if warnings:
            summary += f" with {len(warnings)} minor variation(s)"
    else:
        summary = f"INCONSISTENT: Views show different designs ({len(critical_issues)} critical issue(s))"

    return ConsistencyValidation(
        isConsistent=is_consistent,
        consistencyScore=score,
        checks=checks,
        criticalIssues=critical_issues,
        warnings=warnings,
        summary=summary,
    )


def consistency_score(checks: List[ConsistencyCheck]) -> int:
    """70% weight on critical checks, 30% on all checks, rounded half up"""
    critical = [c for c in checks if c.severity == "critical"]
    critical_score = (sum(c.matches for c in critical) / len(critical) * 100) if critical else 100.0
    overall_score = (sum(c.matches for c in checks) / len(checks) * 100) if checks else 100.0
    return int(critical_score * 0.7 + overall_score * 0.3 + 0.5)


def generate_consistency_report(validation: ConsistencyValidation, design_id: str) -> str:
    """Multi-line report for the generation log"""
    lines = [
        "",
        "=" * 70,
        "CONSISTENCY VALIDATION REPORT",
        "=" * 70,
        "",
        f"Design ID: {design_id}",
        f"Consistency Score: {validation.consistencyScore}%",
        f"Overall Status: {'CONSISTENT' if validation.isConsistent else 'INCONSISTENT'}",
        "",
    ]

    if validation.criticalIssues:
        lines.append("CRITICAL ISSUES:")
        lines += [f"   {issue}" for issue in validation.criticalIssues]
        lines.append("")

    if validation.warnings:
        lines.append("WARNINGS:")
        lines += [f"   {warning}" for warning in validation.warnings]
        lines.append("")

    lines.append("DETAILED COMPARISON:")
    for check in validation.checks:
        lines.append(f"   {check.element}: {'MATCH' if check.matches else 'DIFFER'}")
        if not check.matches:
            lines.append(f"      View 1: {check.view1}")
            lines.append(f"      View 2: {check.view2}")
    lines.append("")

    lines.append(f"SUMMARY: {validation.summary}")
    if not validation.isConsistent:
        lines.append("")
        lines.append("ACTION REQUIRED: Images may show different jewelry pieces.")
        lines.append("   Consider regenerating to ensure both views show the same design.")

    lines += ["", "=" * 70, ""]
    return "\n".join(lines)


def quick_consistency_check(revised_prompt1: Optional[str], revised_prompt2: Optional[str]) -> Tuple[bool, str]:
    """Critical elements only, returns (consistent, message)"""
    if not revised_prompt1 or not revised_prompt2:
        return False, "Missing revised prompts"

    first = extract_elements_from_prompt(revised_prompt1)
    second = extract_elements_from_prompt(revised_prompt2)

    metal_match = sorted(first["metalColor"]) == sorted(second["metalColor"])
    text_match = sorted(first["customText"]) == sorted(second["customText"])
    chain_match = not first["chains"] or not second["chains"] or first["chains"] == second["chains"]

    if metal_match and text_match and chain_match:
        return True, "Both views appear to show the same jewelry"

    issues = []
    if not metal_match:
        issues.append("different metal")
    if not text_match:
        issues.append("different text")
    if not chain_match:
        issues.append("different chain count")
    return False, f"Views differ: {', '.join(issues)}"
