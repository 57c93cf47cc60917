"""Which prompts go to which endpoint for a translation request."""

from __future__ import annotations

from dataclasses import dataclass

from .config_schema import TranslatorSettings
from .endpoints import BackendEndpoints, Endpoint, resolve_endpoints
from .logging_utils import get_logger
from .prompts import (
    build_direct_prompt,
    compose_extraction_prompt,
    compose_translation_prompt,
)

LOGGER = get_logger(__name__, component="PromptPlan")

MODE_VISION_DIRECT = "vision-direct"
MODE_RELAY = "relay"

STAGE_VISION = "vision"
STAGE_EXTRACT = "extract"
STAGE_TRANSLATE = "translate"


@dataclass(frozen=True)
class PlanStage:
    name: str
    endpoint: Endpoint
    prompt: str


@dataclass(frozen=True)
class TranslationPlan:
    """Ordered requests for one translation; each stage feeds the next."""

    mode: str
    stages: tuple[PlanStage, ...]
    extract_prompt: str
    translate_prompt: str
    stream_output: bool

    @property
    def stage_names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)


def _mode(settings: TranslatorSettings) -> str:
    return MODE_VISION_DIRECT if settings.use_vision_for_translation else MODE_RELAY


def _endpoints(settings: TranslatorSettings, endpoints: BackendEndpoints | None) -> BackendEndpoints:
    return endpoints if endpoints is not None else resolve_endpoints(settings)


def plan_screenshot_translation(
    settings: TranslatorSettings,
    endpoints: BackendEndpoints | None = None,
) -> TranslationPlan:
    """Vision-direct mode is one vision request; relay mode extracts, then translates."""
    endpoints = _endpoints(settings, endpoints)
    variables = settings.prompt_variables()
    extract_prompt = compose_extraction_prompt(settings.extract_prompt, variables)
    translate_prompt = compose_translation_prompt(settings.translate_prompt, variables)

    if settings.use_vision_for_translation:
        stages = (PlanStage(STAGE_VISION, endpoints.vision, build_direct_prompt(variables)),)
    else:
        stages = (
            PlanStage(STAGE_EXTRACT, endpoints.vision, extract_prompt),
            PlanStage(STAGE_TRANSLATE, endpoints.translate, translate_prompt),
        )

    plan = TranslationPlan(
        mode=_mode(settings),
        stages=stages,
        extract_prompt=extract_prompt,
        translate_prompt=translate_prompt,
        stream_output=settings.enable_stream_output,
    )
    LOGGER.debug(
        "Screenshot translation planned.",
        details={"mode": plan.mode, "stages": list(plan.stage_names)},
    )
    return plan


def plan_text_translation(
    settings: TranslatorSettings,
    endpoints: BackendEndpoints | None = None,
) -> TranslationPlan:
    """Typed-in text skips extraction and goes straight to the translate model."""
    endpoints = _endpoints(settings, endpoints)
    variables = settings.prompt_variables()
    translate_prompt = compose_translation_prompt(settings.translate_prompt, variables)
    return TranslationPlan(
        mode=_mode(settings),
        stages=(PlanStage(STAGE_TRANSLATE, endpoints.translate, translate_prompt),),
        extract_prompt=compose_extraction_prompt(settings.extract_prompt, variables),
        translate_prompt=translate_prompt,
        stream_output=settings.enable_stream_output,
    )


__all__ = [
    "MODE_RELAY",
    "MODE_VISION_DIRECT",
    "PlanStage",
    "TranslationPlan",
    "plan_screenshot_translation",
    "plan_text_translation",
]
