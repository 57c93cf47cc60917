"""Prompt templates and the composer that fills them for a translation run.

Templates are persisted with the user's settings, so the placeholder syntax
(``{{.Name}}``) is part of the stored format and must stay stable.

Two instruction families exist:

* extraction prompts carry either the relay instruction (OCR text is
  translated in a second request) or the vision-direct instruction (the
  vision model translates in the same pass); never both;
* translation prompts carry one of two fixed vision-mode phrasings.

Composition never raises. Unknown ``{{.Tokens}}`` are left as they are.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .coercion import parse_bool, text_or_default
from .languages import AUTO_LANGUAGE, display_name
from .logging_utils import get_logger

LOGGER = get_logger(__name__, component="PromptComposer")

SOURCE_LANGUAGE_TOKEN = "{{.SourceLanguage}}"
TARGET_LANGUAGE_TOKEN = "{{.TargetLanguage}}"
RELAY_INSTRUCTION_TOKEN = "{{.RelayInstruction}}"
VISION_DIRECT_INSTRUCTION_TOKEN = "{{.VisionDirectInstruction}}"
VISION_MODE_INSTRUCTION_TOKEN = "{{.VisionModeInstruction}}"

PLACEHOLDER_TOKENS: tuple[str, ...] = (
    SOURCE_LANGUAGE_TOKEN,
    TARGET_LANGUAGE_TOKEN,
    RELAY_INSTRUCTION_TOKEN,
    VISION_DIRECT_INSTRUCTION_TOKEN,
    VISION_MODE_INSTRUCTION_TOKEN,
)

DEFAULT_SOURCE_LANGUAGE = AUTO_LANGUAGE
DEFAULT_TARGET_LANGUAGE = "zh-CN"
DEFAULT_USE_VISION_FOR_TRANSLATION = True

# Leading words of each instruction; nothing else in the shipped templates uses them.
RELAY_MARKER = "Relay mode"
VISION_DIRECT_MARKER = "Vision-direct mode"
VISION_MODE_ON_MARKER = "Vision-direct translation is on"
VISION_MODE_OFF_MARKER = "The input comes from the OCR step"

# Replaces the source language name when the source is auto-detected.
DETECTED_LANGUAGE_PHRASE = "the language detected in the image"

_SWEEP_PASSES = 4

DEFAULT_EXTRACT_PROMPT = """You are a visual context analyst preparing complete material for a high-quality translation. Do the following:

1. Background: describe the scene, subjects, layout, style and any visual cues that could affect how the text is understood.
2. Source text: extract every piece of text in the image, keeping the {{.SourceLanguage}} original in its order and format (line breaks, indentation, symbols and letter case).

Output requirements:
- Return the result strictly as the JSON structure below, with no extra commentary:
{
  "background": "...",
  "words": "..."
}
- The "words" field must contain only the recognised source text.

{{.RelayInstruction}}
{{.VisionDirectInstruction}}"""

DEFAULT_TRANSLATE_PROMPT = """You are a translation AI specialised in text taken from images. You will receive a JSON object:
- the "background" field describes the scene for reference;
- the "words" field holds the source text to translate (language: {{.SourceLanguage}}).

Translate the "words" field precisely into {{.TargetLanguage}}, keeping the original paragraphs, line breaks and symbols. Follow these rules:
1. Translate only the "words" field and ignore the content of "background";
2. Use the context given in "background" to pick suitable terms and phrasing;
3. Keep proper nouns, numbers and layout consistent;
4. Do not add explanations or notes to the output.

{{.VisionModeInstruction}}"""


@dataclass(frozen=True)
class PromptVariables:
    """Values a template is composed with."""

    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE
    use_vision_for_translation: bool = DEFAULT_USE_VISION_FOR_TRANSLATION

    @classmethod
    def coerce(cls, value: Any) -> "PromptVariables":
        """Build variables from an instance, a settings object or a mapping.

        Mappings may use the wire names (``sourceLanguage``) or the Python
        ones (``source_language``). Missing or malformed values take the
        configuration defaults.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            source = _pick(value, "sourceLanguage", "source_language")
            target = _pick(value, "targetLanguage", "target_language")
            use_vision = _pick(value, "useVisionForTranslation", "use_vision_for_translation")
        elif value is not None:
            source = getattr(value, "source_language", None)
            target = getattr(value, "target_language", None)
            use_vision = getattr(value, "use_vision_for_translation", None)
        else:
            source = target = use_vision = None
        return cls(
            source_language=text_or_default(source, DEFAULT_SOURCE_LANGUAGE),
            target_language=text_or_default(target, DEFAULT_TARGET_LANGUAGE),
            use_vision_for_translation=parse_bool(use_vision, DEFAULT_USE_VISION_FOR_TRANSLATION),
        )


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


def _scrub_tokens(text: str) -> str:
    # A removal can splice two fragments into a new token, hence the loop.
    while True:
        scrubbed = text
        for token in PLACEHOLDER_TOKENS:
            scrubbed = scrubbed.replace(token, "")
        if scrubbed == text:
            return scrubbed
        text = scrubbed


def _language_name(code: str) -> str:
    return _scrub_tokens(display_name(code))


def relay_instruction(variables: Any) -> str:
    """Instruction for relay mode; empty when the vision model translates directly."""
    variables = PromptVariables.coerce(variables)
    if variables.use_vision_for_translation:
        return ""
    target = _language_name(variables.target_language)
    return (
        f"{RELAY_MARKER}: return only the JSON with the original text. "
        f"A separate translation step will convert it into {target}."
    )


def vision_direct_instruction(variables: Any) -> str:
    """Instruction for vision-direct mode; empty in relay mode."""
    variables = PromptVariables.coerce(variables)
    if not variables.use_vision_for_translation:
        return ""
    target = _language_name(variables.target_language)
    return (
        f"{VISION_DIRECT_MARKER}: after the JSON output, give the {target} translation "
        "laid out like the original, without repeating the source text."
    )


def vision_mode_instruction(variables: Any) -> str:
    """The translation prompt's closing line, chosen by the vision flag alone."""
    variables = PromptVariables.coerce(variables)
    target = _language_name(variables.target_language)
    if variables.use_vision_for_translation:
        return (
            f"{VISION_MODE_ON_MARKER}: if the input still contains source text, output the "
            f"corresponding {target} translation directly, keeping the original layout."
        )
    return (
        f"{VISION_MODE_OFF_MARKER}: output only the translated {target} text, "
        "without repeating or appending the source text."
    )


def _replace_all(text: str, replacements: Mapping[str, str]) -> str:
    for token, value in replacements.items():
        text = text.replace(token, value)
    return text


def _sweep(text: str, replacements: Mapping[str, str]) -> str:
    """Resolve tokens that only appeared once neighbouring substitutions were made."""
    for _ in range(_SWEEP_PASSES):
        if not any(token in text for token in PLACEHOLDER_TOKENS):
            return text
        text = _replace_all(text, replacements)
    return _scrub_tokens(text)


def _compose(template: Any, variables: PromptVariables, instructions: Mapping[str, str]) -> str:
    text = template if isinstance(template, str) else ""
    languages = {
        SOURCE_LANGUAGE_TOKEN: _language_name(variables.source_language),
        TARGET_LANGUAGE_TOKEN: _language_name(variables.target_language),
    }
    # Language names first: instruction blocks embed them.
    text = _replace_all(text, languages)
    text = _replace_all(text, instructions)
    text = _sweep(text, {**languages, **instructions})
    return text.strip()


def compose_extraction_prompt(template: Any, variables: Any) -> str:
    """Fill an extraction template.

    Exactly one of the relay/vision-direct instructions is non-empty. A
    ``{{.VisionModeInstruction}}`` token belongs to translation templates and
    collapses to an empty string here.
    """
    variables = PromptVariables.coerce(variables)
    LOGGER.debug(
        "Composing extraction prompt.",
        details={
            "vision_direct": variables.use_vision_for_translation,
            "template_length": len(template) if isinstance(template, str) else 0,
        },
    )
    return _compose(
        template,
        variables,
        {
            RELAY_INSTRUCTION_TOKEN: relay_instruction(variables),
            VISION_DIRECT_INSTRUCTION_TOKEN: vision_direct_instruction(variables),
            VISION_MODE_INSTRUCTION_TOKEN: "",
        },
    )


def compose_translation_prompt(template: Any, variables: Any) -> str:
    """Fill a translation template; extraction-only tokens collapse to nothing."""
    variables = PromptVariables.coerce(variables)
    LOGGER.debug(
        "Composing translation prompt.",
        details={
            "vision_direct": variables.use_vision_for_translation,
            "template_length": len(template) if isinstance(template, str) else 0,
        },
    )
    return _compose(
        template,
        variables,
        {
            VISION_MODE_INSTRUCTION_TOKEN: vision_mode_instruction(variables),
            RELAY_INSTRUCTION_TOKEN: "",
            VISION_DIRECT_INSTRUCTION_TOKEN: "",
        },
    )


def build_direct_prompt(variables: Any) -> str:
    """Self-contained prompt for reading and translating an image in one request."""
    variables = PromptVariables.coerce(variables)
    target = _language_name(variables.target_language)
    if variables.source_language == AUTO_LANGUAGE:
        source = DETECTED_LANGUAGE_PHRASE
    else:
        source = _language_name(variables.source_language)

    return f"""You are a visual translation expert who reads text straight from images and translates it into {target}.
**Core tasks:**
1. Recognise all text in the image;
2. Translate the recognised text from {source} into {target};
3. Output the translation directly, preserving the original formatting.
**Translation requirements:**
- Keep the original line breaks, spacing and punctuation;
- Make the translation accurate and natural for {target} readers;
- Use the image context to choose the most fitting wording;
- Do not include explanations, notes or the original text.

**Output format:**
Output only the translated text and nothing else."""


__all__ = [
    "DEFAULT_EXTRACT_PROMPT",
    "DEFAULT_TRANSLATE_PROMPT",
    "DETECTED_LANGUAGE_PHRASE",
    "PLACEHOLDER_TOKENS",
    "PromptVariables",
    "RELAY_MARKER",
    "VISION_DIRECT_MARKER",
    "build_direct_prompt",
    "compose_extraction_prompt",
    "compose_translation_prompt",
    "relay_instruction",
    "vision_direct_instruction",
    "vision_mode_instruction",
]
