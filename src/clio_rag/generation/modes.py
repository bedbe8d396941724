"""Built-in research modes and their default sampling parameters."""

from __future__ import annotations

from clio_rag.config.constants import DEFAULT_MODE_ID
from clio_rag.exceptions import ConfigurationError
from clio_rag.models.domain import SamplingParams
from clio_rag.models.schemas import SamplingOverrides

MODE_PRESETS: dict[str, SamplingParams] = {
    "default-assistant": SamplingParams(
        temperature=0.1, top_p=0.85, top_k=40, repeat_penalty=1.1, context_window_tokens=4096
    ),
    "literature-review": SamplingParams(
        temperature=0.15, top_p=0.85, top_k=40, repeat_penalty=1.15, context_window_tokens=32768
    ),
    "primary-source-analyst": SamplingParams(
        temperature=0.1, top_p=0.85, top_k=40, repeat_penalty=1.1, context_window_tokens=8192
    ),
    "critical-reviewer": SamplingParams(
        temperature=0.3, top_p=0.9, top_k=50, repeat_penalty=1.1, context_window_tokens=16384
    ),
    "academic-writer": SamplingParams(
        temperature=0.4, top_p=0.9, top_k=50, repeat_penalty=1.05, context_window_tokens=16384
    ),
    "methodology-assistant": SamplingParams(
        temperature=0.2, top_p=0.85, top_k=40, repeat_penalty=1.1, context_window_tokens=8192
    ),
    "free-mode": SamplingParams(
        temperature=0.7, top_p=0.95, top_k=50, repeat_penalty=1.0, context_window_tokens=4096
    ),
}


def get_mode_preset(mode_id: str | None) -> SamplingParams:
    mode_id = mode_id or DEFAULT_MODE_ID
    try:
        return MODE_PRESETS[mode_id]
    except KeyError:
        raise ConfigurationError(
            f"Unknown mode {mode_id!r}. Built-in modes: {', '.join(MODE_PRESETS)}."
        ) from None


def resolve_sampling(mode_id: str | None, overrides: SamplingOverrides) -> SamplingParams:
    """Caller overrides win over the mode preset, field by field."""
    preset = get_mode_preset(mode_id)
    return SamplingParams(
        temperature=overrides.temperature if overrides.temperature is not None else preset.temperature,
        top_p=overrides.top_p if overrides.top_p is not None else preset.top_p,
        top_k=overrides.top_k if overrides.top_k is not None else preset.top_k,
        repeat_penalty=(
            overrides.repeat_penalty
            if overrides.repeat_penalty is not None
            else preset.repeat_penalty
        ),
        context_window_tokens=(
            overrides.context_window_tokens
            if overrides.context_window_tokens is not None
            else preset.context_window_tokens
        ),
    )
