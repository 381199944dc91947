"""Tests for tokentop.utils.pricing."""

import pytest

from tokentop.types import TokenCounts
from tokentop.utils.pricing import (
    ModelPricing,
    estimate_cost,
    estimate_model_cost,
    format_cost,
    format_token_count,
    get_fallback_pricing,
)


class TestLookup:
    def test_exact_match(self):
        pricing = get_fallback_pricing("anthropic", "claude-sonnet-4-20250514")
        assert pricing == ModelPricing(3.00, 15.00, 0.30, 3.75)

    def test_dated_model_matches_family(self):
        assert get_fallback_pricing("openai", "gpt-4.1-2025-04-14").input == 2.00

    def test_unknown_provider_or_model(self):
        assert get_fallback_pricing("acme", "gpt-4o") is None
        assert get_fallback_pricing("anthropic", "") is None
        assert get_fallback_pricing("google", "palm-2") is None


class TestEstimate:
    def test_input_output(self):
        tokens = TokenCounts(input=1_000_000, output=1_000_000)
        assert estimate_cost(tokens, ModelPricing(3.00, 15.00)) == pytest.approx(18.0)

    def test_cache_tokens_priced_when_available(self):
        tokens = TokenCounts(input=0, output=0, cache_read=1_000_000, cache_write=1_000_000)
        assert estimate_cost(tokens, ModelPricing(3.00, 15.00, 0.30, 3.75)) == pytest.approx(4.05)
        assert estimate_cost(tokens, ModelPricing(3.00, 15.00)) == 0

    def test_model_cost_unknown(self):
        assert estimate_model_cost("acme", "x", TokenCounts(input=10)) is None

    def test_model_cost_known(self):
        cost = estimate_model_cost("openai", "gpt-4o", TokenCounts(input=1_000_000))
        assert cost == pytest.approx(2.5)


class TestFormatting:
    def test_format_cost(self):
        assert format_cost(0.005) == "$0.0050"
        assert format_cost(0.5) == "$0.500"
        assert format_cost(12.5) == "$12.50"

    def test_format_token_count(self):
        assert format_token_count(999) == "999"
        assert format_token_count(1500) == "1.5K"
        assert format_token_count(2_500_000) == "2.50M"
