import pytest

from jewelcraft.services.prompt_engineer import (
    MAX_PROMPT_LENGTH,
    analyze_design_elements,
    build_view_prompt,
    create_design_fingerprint,
    extract_engraved_name,
    generate_design_hash,
    get_view_spec,
)


def test_design_hash_is_stable_and_padded():
    assert generate_design_hash("") == "00000000"
    assert generate_design_hash("a") == "0000002P"
    assert generate_design_hash("rose gold ring") == generate_design_hash("rose gold ring")
    assert generate_design_hash("rose gold ring") != generate_design_hash("white gold ring")


def test_design_hash_for_long_text_is_eight_characters():
    value = generate_design_hash("vintage platinum engagement ring " * 50)

    assert len(value) == 8
    assert value == value.upper()


def test_analyze_design_elements():
    elements = analyze_design_elements("Vintage rose gold ring with a sapphire in a halo, brushed finish")

    assert elements["metals"] == ["rose gold"]
    assert elements["gemstones"] == ["sapphire"]
    assert elements["styles"] == ["Vintage"]
    assert elements["settings"] == ["halo"]
    assert elements["finishes"] == ["brushed"]


def test_fingerprint_defaults_for_plain_ring():
    fingerprint = create_design_fingerprint("simple band", "simple band")

    assert fingerprint.jewelryType == "ring"
    assert fingerprint.metal.type == "14-karat yellow gold"
    assert fingerprint.metal.finish == "mirror polish"
    assert fingerprint.metal.reflectivity == 85
    assert fingerprint.dimensions.ringSize == "6.5 US"
    assert fingerprint.gemstones == []
    assert 3 <= len(fingerprint.distinctiveFeatures) <= 5


def test_fingerprint_halo_adds_accent_stones():
    vision = "rose gold necklace with sapphire in a halo"
    fingerprint = create_design_fingerprint(vision, vision)

    primary, halo = fingerprint.gemstones
    assert fingerprint.jewelryType == "necklace"
    assert fingerprint.metal.type == "rose gold"
    assert fingerprint.dimensions.ringSize is None
    assert primary.type == "sapphire"
    assert primary.cut == "cushion cut"
    assert primary.setting == "halo"
    assert halo.role == "halo"
    assert halo.count == 20


def test_fingerprint_pave_adds_band_accents():
    vision = "18k white gold diamond ring with pave band"
    fingerprint = create_design_fingerprint(vision, vision)

    accent = fingerprint.gemstones[1]
    assert accent.role == "accent"
    assert accent.count == 30
    assert fingerprint.metal.karat == 18


def test_fingerprint_id_follows_sanitized_vision():
    fingerprint = create_design_fingerprint("floating ring", "suspended ring")

    assert fingerprint.id == generate_design_hash("suspended ring")


def test_engraved_name_in_features():
    vision = 'yellow gold ring engraved "Mirja"'
    fingerprint = create_design_fingerprint(vision, vision)

    assert extract_engraved_name(vision) == "Mirja"
    assert 'Engraved "Mirja" inscription' in fingerprint.distinctiveFeatures


@pytest.mark.parametrize("number,view_type", [(1, "HERO"), (2, "TECHNICAL"), (3, "DETAIL"), (4, "LIFESTYLE")])
def test_view_specs(number, view_type):
    spec = get_view_spec(number)

    assert spec.type == view_type
    assert spec.viewNumber == number


def test_view_prompt_embeds_vision_and_fingerprint():
    vision = "rose gold ring with a round diamond"
    fingerprint = create_design_fingerprint(vision, vision)

    first = build_view_prompt(vision, fingerprint, get_view_spec(1), 2)
    second = build_view_prompt(vision, fingerprint, get_view_spec(2), 2)

    assert first.startswith(f"LUXURY JEWELRY SPEC | ID: {fingerprint.id} | View 1/2")
    assert vision in first
    assert "EXACT SAME piece from View 1" not in first
    assert "EXACT SAME piece from View 1" in second


def test_view_prompt_respects_length_limit():
    vision = "white gold ring with an oval sapphire and tiny side diamonds " * 80
    fingerprint = create_design_fingerprint(vision, vision)

    prompt = build_view_prompt(vision, fingerprint, get_view_spec(2), 4)

    assert len(prompt) <= MAX_PROMPT_LENGTH
    assert "..." in prompt
    assert f"ID: {fingerprint.id}" in prompt
