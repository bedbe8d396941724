"""Tests for mode presets and sampling overrides."""

from __future__ import annotations

import pytest

from clio_rag.exceptions import ConfigurationError
from clio_rag.generation.modes import MODE_PRESETS, get_mode_preset, resolve_sampling
from clio_rag.models.schemas import SamplingOverrides


def test_default_mode_when_unset():
    assert get_mode_preset(None) == MODE_PRESETS["default-assistant"]


def test_unknown_mode_raises():
    with pytest.raises(ConfigurationError):
        get_mode_preset("poet")


def test_overrides_win_field_by_field():
    sampling = resolve_sampling(
        "literature-review", SamplingOverrides(temperature=0.0, context_window_tokens=8192)
    )
    assert sampling.temperature == 0.0
    assert sampling.context_window_tokens == 8192
    assert sampling.repeat_penalty == MODE_PRESETS["literature-review"].repeat_penalty


def test_no_overrides_returns_preset():
    assert resolve_sampling("free-mode", SamplingOverrides()) == MODE_PRESETS["free-mode"]
