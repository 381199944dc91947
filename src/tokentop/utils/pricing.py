"""Fallback model pricing and cost estimation."""

from dataclasses import dataclass
from typing import Optional

from tokentop.types import TokenCounts


@dataclass(frozen=True)
class ModelPricing:
    """USD per 1M tokens."""
    input: float
    output: float
    cache_read: Optional[float] = None
    cache_write: Optional[float] = None


FALLBACK_PRICING: dict[str, dict[str, ModelPricing]] = {
    "anthropic": {
        "claude-sonnet-4-20250514":   ModelPricing(3.00, 15.00, 0.30, 3.75),
        "claude-3-7-sonnet-20250219": ModelPricing(3.00, 15.00, 0.30, 3.75),
        "claude-3-5-sonnet-20241022": ModelPricing(3.00, 15.00, 0.30, 3.75),
        "claude-3-5-haiku-20241022":  ModelPricing(0.80, 4.00, 0.08, 1.00),
        "claude-3-opus-20240229":     ModelPricing(15.00, 75.00, 1.50, 18.75),
    },
    "openai": {
        "gpt-4.1":      ModelPricing(2.00, 8.00, 0.50),
        "gpt-4.1-mini": ModelPricing(0.40, 1.60, 0.10),
        "gpt-4o":       ModelPricing(2.50, 10.00, 1.25),
        "gpt-4o-mini":  ModelPricing(0.15, 0.60, 0.075),
        "o1":           ModelPricing(15.00, 60.00),
        "o1-mini":      ModelPricing(1.10, 4.40),
        "o3":           ModelPricing(10.00, 40.00),
        "o3-mini":      ModelPricing(1.10, 4.40),
        "o4-mini":      ModelPricing(1.10, 4.40),
    },
    "google": {
        "gemini-2.0-flash":      ModelPricing(0.10, 0.40),
        "gemini-2.0-flash-lite": ModelPricing(0.075, 0.30),
        "gemini-2.5-pro":        ModelPricing(1.25, 10.00),
        "gemini-2.5-flash":      ModelPricing(0.15, 0.60),
    },
    "openrouter": {
        "anthropic/claude-sonnet-4": ModelPricing(3.00, 15.00),
        "openai/gpt-4.1":            ModelPricing(2.00, 8.00),
        "google/gemini-2.5-pro":     ModelPricing(1.25, 10.00),
    },
}


def get_fallback_pricing(provider_id: str, model_id: str) -> ModelPricing | None:
    """Exact model match first, then substring match in either direction."""
    provider_pricing = FALLBACK_PRICING.get(provider_id)
    if not provider_pricing or not model_id:
        return None
    exact = provider_pricing.get(model_id)
    if exact:
        return exact
    for key, pricing in provider_pricing.items():
        if key in model_id or model_id in key:
            return pricing
    return None


def estimate_cost(tokens: TokenCounts, pricing: ModelPricing) -> float:
    """Calculate cost in USD for the given token counts."""
    total = (
        tokens.input * pricing.input
        + tokens.output * pricing.output
    )
    if tokens.cache_read and pricing.cache_read:
        total += tokens.cache_read * pricing.cache_read
    if tokens.cache_write and pricing.cache_write:
        total += tokens.cache_write * pricing.cache_write
    return round(total / 1_000_000, 6)


def estimate_model_cost(provider_id: str, model_id: str, tokens: TokenCounts) -> float | None:
    pricing = get_fallback_pricing(provider_id, model_id)
    if pricing is None:
        return None
    return estimate_cost(tokens, pricing)


def format_cost(cost: float) -> str:
    if cost < 0.01:
        return f"${cost:.4f}"
    if cost < 1:
        return f"${cost:.3f}"
    return f"${cost:.2f}"


def format_token_count(tokens: int) -> str:
    if tokens < 1000:
        return str(tokens)
    if tokens < 1_000_000:
        return f"{tokens / 1000:.1f}K"
    return f"{tokens / 1_000_000:.2f}M"
