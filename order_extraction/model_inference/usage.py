"""
Usage Meter - token and cost accounting for hosted-model calls.

Cost is derived from fixed per-million-token prices:

    cost = input_tokens / 1e6 * price_in + output_tokens / 1e6 * price_out

Author: ML Engineering Team
"""

from typing import Optional

from config import get_config
from .extraction_result import UsageMetadata


class UsageMeter:
    """
    Accumulates prompt/response token counts across request rounds.

    Attributes:
        price_input_per_million: USD per 1M prompt tokens
        price_output_per_million: USD per 1M response tokens
        input_tokens: Prompt tokens recorded so far
        output_tokens: Response tokens recorded so far

    Example:
        >>> meter = UsageMeter(price_input_per_million=0.075,
        ...                    price_output_per_million=0.30)
        >>> meter.record(1000, 500)
        >>> round(meter.estimated_cost, 6)
        0.000225
    """

    def __init__(
        self,
        price_input_per_million: Optional[float] = None,
        price_output_per_million: Optional[float] = None
    ) -> None:
        if price_input_per_million is None:
            price_input_per_million = get_config("cloud.pricing.input_per_million", 0.075)
        if price_output_per_million is None:
            price_output_per_million = get_config("cloud.pricing.output_per_million", 0.30)

        self.price_input_per_million = float(price_input_per_million)
        self.price_output_per_million = float(price_output_per_million)
        self.input_tokens = 0
        self.output_tokens = 0
        self.rounds = 0

    def record(self, input_tokens: Optional[int], output_tokens: Optional[int]) -> None:
        """Add one request round's token counts (None counts as zero)."""
        self.input_tokens += int(input_tokens or 0)
        self.output_tokens += int(output_tokens or 0)
        self.rounds += 1

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def estimated_cost(self) -> float:
        """Estimated cost in USD for everything recorded so far."""
        return calculate_cost(
            self.input_tokens,
            self.output_tokens,
            self.price_input_per_million,
            self.price_output_per_million,
        )

    def to_metadata(self, model_name: str) -> UsageMetadata:
        """Snapshot the meter as UsageMetadata."""
        return UsageMetadata(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.total_tokens,
            model_name=model_name,
            estimated_cost=self.estimated_cost,
        )


def calculate_cost(
    input_tokens: int,
    output_tokens: int,
    price_input_per_million: float,
    price_output_per_million: float
) -> float:
    """
    Calculate cost in USD from token counts and per-million prices.

    Args:
        input_tokens: Prompt tokens used
        output_tokens: Response tokens used
        price_input_per_million: USD per 1M prompt tokens
        price_output_per_million: USD per 1M response tokens

    Returns:
        Cost in USD
    """
    return (
        (input_tokens / 1_000_000) * price_input_per_million
        + (output_tokens / 1_000_000) * price_output_per_million
    )
