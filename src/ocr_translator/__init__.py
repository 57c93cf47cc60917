"""Settings normalization and prompt composition for a screen OCR translator."""

from .config_schema import TranslatorSettings, denormalize, normalize
from .languages import display_name
from .prompts import (
    PromptVariables,
    build_direct_prompt,
    compose_extraction_prompt,
    compose_translation_prompt,
)

__version__ = "0.3.0"

__all__ = [
    "PromptVariables",
    "TranslatorSettings",
    "build_direct_prompt",
    "compose_extraction_prompt",
    "compose_translation_prompt",
    "denormalize",
    "display_name",
    "normalize",
]
