"""Token budgeting mode and model context limit definitions.

Provides:
    - BudgetingMode: Enum for input-only vs combined budgeting strategies
    - ModelContextLimits: Dataclass defining model token constraints
    - ProviderWindow: A configured provider/model paired with its window
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BudgetingMode(str, Enum):
    """Token budgeting strategies for different model architectures.

    - INPUT_ONLY: Context window is for input only; output is separate.
    - COMBINED: Context window includes both input and output, so space
      must be reserved for the response.
    """

    INPUT_ONLY = "input_only"
    COMBINED = "combined"


@dataclass(frozen=True)
class ModelContextLimits:
    """Token limits for a specific model.

    Attributes:
        context_window: Maximum context tokens the model accepts
        max_output_tokens: Maximum tokens the model can generate in output
        budgeting_mode: How to allocate tokens between input and output
        output_reserved: Tokens to reserve for output when mode is COMBINED
    """

    context_window: int
    max_output_tokens: int
    budgeting_mode: BudgetingMode = BudgetingMode.INPUT_ONLY
    output_reserved: int = 0

    def __post_init__(self) -> None:
        """Validate limits after initialization."""
        if self.context_window <= 0:
            raise ValueError(f"context_window must be positive, got {self.context_window}")
        if self.max_output_tokens <= 0:
            raise ValueError(f"max_output_tokens must be positive, got {self.max_output_tokens}")
        if self.output_reserved < 0:
            raise ValueError(f"output_reserved must be non-negative, got {self.output_reserved}")
        if self.budgeting_mode == BudgetingMode.COMBINED:
            if self.output_reserved > self.context_window:
                raise ValueError(
                    f"output_reserved ({self.output_reserved}) cannot exceed context_window ({self.context_window})"
                )


@dataclass(frozen=True)
class ProviderWindow:
    """A configured provider/model and the input window it offers."""

    provider: str
    model: Optional[str]
    context_window: int

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "model": self.model,
            "context_window": self.context_window,
        }
