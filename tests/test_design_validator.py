from jewelcraft.services.design_validator import (
    extract_custom_elements,
    generate_validation_report,
    suggest_prompt_improvements,
    validate_prompt_inclusion,
    validate_revised_prompt,
)
from jewelcraft.services.prompt_engineer import create_design_fingerprint


def test_extract_quoted_engraving():
    elements = extract_custom_elements('Necklace engraved "Forever" for Sarah')

    assert elements.customText == ["Forever"]
    assert elements.names == ["Forever"]
    assert elements.engravings == ["Forever"]
    assert elements.numbers == []


def test_extract_name_number_and_instruction():
    elements = extract_custom_elements("ring named Mirja with date 12/05/2020")

    assert elements.names == ["Mirja"]
    assert elements.numbers == ["12/05/2020"]
    assert elements.specialInstructions == ["date"]
    assert elements.customText == []


def test_extract_accepts_curly_quotes():
    assert extract_custom_elements("pendant with text “Always”").customText == ["Always"]


def test_extract_from_empty_vision():
    elements = extract_custom_elements("")

    assert elements.customText == elements.names == elements.engravings == []


def test_missing_name_is_an_error():
    result = validate_prompt_inclusion("pendant named Mirja", "A gold pendant")

    assert result.isValid is False
    assert 'Name "Mirja" not found in generation prompt - CRITICAL for personalization' in result.errors


def test_missing_custom_text_is_an_error():
    result = validate_prompt_inclusion('bracelet with text "Love"', "A gold bracelet")

    assert 'Custom text "Love" not found in generation prompt' in result.errors


def test_included_elements_pass():
    result = validate_prompt_inclusion("pendant named Mirja", "DESIGN: gold pendant named Mirja")

    assert result.isValid is True
    assert result.errors == []


def test_engraving_should_be_a_distinctive_feature():
    vision = 'ring engraved "Forever"'
    fingerprint = create_design_fingerprint(vision, vision)

    without = validate_prompt_inclusion(vision, vision)
    with_fingerprint = validate_prompt_inclusion(vision, vision, fingerprint)

    assert any("should be in distinctive features" in w for w in without.warnings)
    assert not any("should be in distinctive features" in w for w in with_fingerprint.warnings)


def test_revised_prompt_missing_is_only_a_warning():
    result = validate_revised_prompt('ring engraved "Forever"', None)

    assert result.isValid is True
    assert result.warnings == ["No revised prompt from DALL-E to validate"]


def test_revised_prompt_dropped_custom_text():
    result = validate_revised_prompt('ring engraved "Forever"', "A gold ring with a diamond")

    assert result.isValid is False
    assert 'DALL-E did NOT include custom text "Forever" - may not appear in image!' in result.errors
    assert "DALL-E may not have understood that text/engraving is required" in result.warnings


def test_revised_prompt_match_is_case_insensitive():
    result = validate_revised_prompt('ring engraved "Forever"', "a gold ring engraved with the word forever")

    assert result.isValid is True
    assert result.warnings == []


def test_revised_prompt_missing_name_is_critical():
    result = validate_revised_prompt("ring named Mirja", "A gold ring")

    assert result.errors == ['CRITICAL: DALL-E did NOT include name "Mirja" - will likely be missing from image!']


def test_report_lists_elements_and_views():
    report = generate_validation_report(
        'ring engraved "Forever"',
        'ring engraved "Forever"',
        ["gold ring engraved Forever", None],
    )

    assert "CUSTOM TEXT VALIDATION REPORT" in report
    assert 'Custom Text: "Forever"' in report
    assert "View 2:" in report


def test_suggestions_for_unquoted_name():
    suggestions = suggest_prompt_improvements("ring named Mirja")

    assert suggestions == ['Put custom names in quotes for clarity, e.g., "Mirja" instead of just Mirja']


def test_suggestions_for_quoted_text_without_style():
    suggestions = suggest_prompt_improvements('ring engraved "Forever"')

    assert any("text style" in s for s in suggestions)
    assert not any("in quotes" in s for s in suggestions)


def test_no_suggestions_when_style_given():
    assert suggest_prompt_improvements('ring engraved "Forever" in script') == []
