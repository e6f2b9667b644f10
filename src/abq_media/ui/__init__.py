"""Terminal interaction layer."""

from abq_media.ui.prompts import (
    CANCELLED,
    Cancelled,
    Choice,
    ConsolePrompter,
    Prompted,
    Prompter,
    PromptResult,
)

__all__ = [
    "CANCELLED",
    "Cancelled",
    "Choice",
    "ConsolePrompter",
    "PromptResult",
    "Prompted",
    "Prompter",
]
