"""
Load prompt templates from the bundled prompts.yaml file.

Prompts are defined in src/chartlens/prompts.yaml and loaded once per process.
"""

import importlib.resources
import re
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from chartlens.utils.exceptions import ConfigurationError

TIMEFRAMES = ("4h", "1h", "15min", "5min")
_FINAL_PLACEHOLDER = re.compile(r"\{analysis_(4h|1h|15min|5min)\}")

# Module-level cache for parsed prompts
_prompts: "PromptsSchema | None" = None


class TimeframePrompt(BaseModel):
    """Prompt settings for one chart timeframe."""

    label: str = Field(..., min_length=1)
    missing: str = Field(..., min_length=1, description="Text used when no chart was uploaded")
    template: str = Field(..., min_length=1, description="May contain {context}")


class FinalPrompt(BaseModel):
    """Template combining every timeframe analysis into a recommendation."""

    template: str = Field(..., min_length=1)


class PromptsSchema(BaseModel):
    """Schema for prompts.yaml configuration file."""

    model_config = {"extra": "allow"}

    timeframes: dict[str, TimeframePrompt]
    final: FinalPrompt


def _parse_prompts(raw: str) -> PromptsSchema:
    """Parse and validate prompts.yaml content.

    Raises:
        ConfigurationError: If YAML is malformed or fails validation.
    """
    try:
        data: Any = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse prompts.yaml: {e}. Check YAML syntax and formatting."
        ) from e

    if data is None:
        raise ConfigurationError(
            "prompts.yaml is empty. Expected 'timeframes' and 'final' sections."
        )

    try:
        prompts = PromptsSchema(**data)
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid prompts.yaml structure: {e}") from e

    missing = [tf for tf in TIMEFRAMES if tf not in prompts.timeframes]
    if missing:
        raise ConfigurationError(
            f"prompts.yaml is missing timeframes: {', '.join(missing)}."
        )
    for placeholder in ("{analysis_4h}", "{analysis_1h}", "{analysis_15min}", "{analysis_5min}"):
        if placeholder not in prompts.final.template:
            raise ConfigurationError(f"final.template must contain {placeholder} placeholder.")
    return prompts


def load_prompts() -> PromptsSchema:
    """Load prompts.yaml from the package. Cached after first call.

    Raises:
        ConfigurationError: If the file is missing, malformed, or invalid.
    """
    global _prompts
    if _prompts is not None:
        return _prompts

    try:
        with (
            importlib.resources.files("chartlens")
            .joinpath("prompts.yaml")
            .open(encoding="utf-8") as f
        ):
            raw = f.read()
    except FileNotFoundError as e:
        raise ConfigurationError(
            "prompts.yaml not found. This file is required and should be bundled with the package."
        ) from e

    _prompts = _parse_prompts(raw)
    return _prompts


def get_timeframe_prompt(timeframe: str, context: str = "") -> str:
    """
    Render the prompt for one timeframe.

    Args:
        timeframe: One of TIMEFRAMES
        context: Analysis of the previous timeframe

    Raises:
        ConfigurationError: If the timeframe has no prompt
    """
    tf = load_prompts().timeframes.get(timeframe)
    if tf is None:
        raise ConfigurationError(f"No prompt configured for timeframe {timeframe!r}.")
    return tf.template.replace("{context}", context)


def get_missing_chart_text(timeframe: str) -> str:
    """Return the placeholder analysis used when a timeframe has no chart."""
    tf = load_prompts().timeframes.get(timeframe)
    if tf is None:
        raise ConfigurationError(f"No prompt configured for timeframe {timeframe!r}.")
    return tf.missing


def get_final_prompt(analyses: dict[str, str]) -> str:
    """Render the final recommendation prompt from the per-timeframe analyses."""
    template = load_prompts().final.template
    return _FINAL_PLACEHOLDER.sub(lambda m: analyses.get(m.group(1), ""), template)
