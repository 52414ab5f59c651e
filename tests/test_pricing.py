import asyncio

import httpx
import pytest

from jewelcraft.config import settings
from jewelcraft.models import JewelrySpecs
from jewelcraft.services import pricing
from jewelcraft.services.pricing import (
    calculate_gemstone_cost,
    calculate_jewelry_price,
    estimate_labor_hours,
    estimate_material_weight,
    fetch_spot_prices,
    get_spot_prices,
    parse_jewelry_specs,
)


# ----- spec parsing -----


def test_parse_white_gold_diamond_ring():
    specs = parse_jewelry_specs("18k white gold ring with 1 carat diamond")

    assert specs.type == "ring"
    assert specs.material == "white-gold"
    assert specs.karat == 18
    assert specs.hasGemstones is True
    assert specs.gemstoneType == "diamond"
    assert specs.gemstoneCarat == 1.0
    assert specs.complexity == "moderate"
    assert specs.size == "medium"


def test_parse_defaults_for_unrecognized_text():
    specs = parse_jewelry_specs("something nice for my anniversary")

    assert specs == JewelrySpecs(type="ring", material="gold", karat=14, complexity="moderate", size="medium")


def test_parse_empty_prompt_never_raises():
    assert parse_jewelry_specs("").type == "ring"


def test_type_keywords_first_match_wins():
    assert parse_jewelry_specs("necklace and matching bracelet").type == "necklace"
    assert parse_jewelry_specs("drop earrings").type == "earrings"
    assert parse_jewelry_specs("art nouveau brooch").type == "brooch"


@pytest.mark.parametrize("prompt", ["sterling silver band", "platinum solitaire"])
def test_karat_only_applies_to_gold(prompt):
    assert parse_jewelry_specs(prompt).karat is None


def test_explicit_carat_overrides_size_guess():
    assert parse_jewelry_specs("large statement ring with 0.75ct sapphire").gemstoneCarat == 0.75


def test_british_karat_spelling_is_not_a_stone_weight():
    specs = parse_jewelry_specs("18ct gold ring with a diamond")

    assert specs.karat == 18
    assert specs.gemstoneType == "diamond"
    assert specs.gemstoneCarat == 1.0


@pytest.mark.parametrize("prompt,karat", [
    ("18kt yellow gold band", 18),
    ("14ct rose gold pendant", 14),
    ("10 carat gold chain", 10),
])
def test_karat_spellings(prompt, karat):
    assert parse_jewelry_specs(prompt).karat == karat


def test_stone_weight_next_to_karat_gold():
    specs = parse_jewelry_specs("18ct gold ring with 2ct sapphire")

    assert specs.karat == 18
    assert specs.gemstoneCarat == 2.0


def test_carat_guess_from_size_keywords():
    assert parse_jewelry_specs("large ruby ring").gemstoneCarat == 2.0
    assert parse_jewelry_specs("large ruby pendant").gemstoneCarat == 1.5
    assert parse_jewelry_specs("small emerald pendant").gemstoneCarat == 0.5


def test_pearl_necklace_counts_strands():
    specs = parse_jewelry_specs("double strand pearl necklace")

    assert specs.type == "necklace"
    assert specs.gemstoneType == "pearl"
    assert specs.pearlCount == 90


def test_pearl_necklace_explicit_count():
    assert parse_jewelry_specs("necklace of 120 pearls").pearlCount == 120


# ----- cost estimation -----


def test_simple_small_silver_ring_price():
    specs = parse_jewelry_specs("simple small silver ring")
    result = calculate_jewelry_price(specs, get_spot_prices())

    assert result.materialCost == 2
    assert result.laborCost == 204
    assert result.gemstoneCost == 0
    assert result.subtotal == 206
    assert result.finalPrice == 453
    assert result.margin == 247
    assert result.breakdown.laborHours == 2.4
    assert result.breakdown.markup == 2.2


def test_final_price_is_subtotal_times_markup():
    specs = parse_jewelry_specs("18k rose gold bracelet with emerald")
    result = calculate_jewelry_price(specs)

    assert abs(result.finalPrice - result.subtotal * 2.2) <= 2
    assert abs(result.margin - (result.finalPrice - result.subtotal)) <= 1


def test_price_is_monotonic_in_inputs():
    base = JewelrySpecs(type="ring", material="silver", complexity="simple", size="small")

    def price(**changes):
        return calculate_jewelry_price(base.model_copy(update=changes)).finalPrice

    assert price(material="platinum") > price()
    assert price(complexity="intricate") > price()
    assert price(size="large") > price()
    assert price(hasGemstones=True, gemstoneType="diamond", gemstoneCarat=1.0) > price()


CARAT_SWEEP = [0, 0.5, 1, 2, 5, 10]


@pytest.mark.parametrize("base", [
    JewelrySpecs(type="ring", material="gold", karat=14, hasGemstones=True, gemstoneType="diamond"),
    JewelrySpecs(type="necklace", material="gold", karat=14, hasGemstones=True, gemstoneType="pearl", pearlCount=90),
], ids=["diamond-ring", "pearl-necklace"])
def test_price_never_drops_as_carat_grows(base):
    prices = [
        calculate_jewelry_price(base.model_copy(update={"gemstoneCarat": carat}), get_spot_prices()).finalPrice
        for carat in CARAT_SWEEP
    ]

    assert prices == sorted(prices)
    assert prices[-1] > prices[0]


def test_pearl_necklace_priced_per_pearl():
    specs = parse_jewelry_specs("double strand pearl necklace")

    assert calculate_gemstone_cost(specs) == 90 * 12


def test_gemstone_cost_zero_without_stones():
    assert calculate_gemstone_cost(JewelrySpecs()) == 0.0


def test_weight_and_labor_tables():
    specs = JewelrySpecs(type="necklace", complexity="intricate", size="large")

    assert estimate_material_weight(specs) == 50.0
    assert estimate_labor_hours(specs) == pytest.approx(42.0)


# ----- spot prices -----


def test_fetch_spot_prices_uses_mock_without_key(monkeypatch):
    monkeypatch.setattr(settings, "METALS_API_KEY", "")

    prices = asyncio.run(fetch_spot_prices())

    assert prices.source == "mock"
    assert prices.gold == 2040


def _patch_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(pricing.httpx, "AsyncClient", factory)


def test_fetch_spot_prices_inverts_live_rates(monkeypatch):
    monkeypatch.setattr(settings, "METALS_API_KEY", "test-key")
    _patch_transport(
        monkeypatch,
        lambda request: httpx.Response(200, json={"rates": {"XAU": 0.0005, "XAG": 0.04, "XPT": 0.001}}),
    )

    prices = asyncio.run(fetch_spot_prices())

    assert prices.source == "live"
    assert prices.gold == pytest.approx(2000.0)
    assert prices.silver == pytest.approx(25.0)
    assert prices.platinum == pytest.approx(1000.0)


def test_fetch_spot_prices_falls_back_on_error(monkeypatch):
    monkeypatch.setattr(settings, "METALS_API_KEY", "test-key")

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    _patch_transport(monkeypatch, handler)

    prices = asyncio.run(fetch_spot_prices())

    assert prices.source == "fallback"
    assert prices.gold == 2000
    assert prices.silver == 25
