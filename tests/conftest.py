"""
Shared fixtures: a scripted upstream backend and pipeline wiring.
"""

import json
import threading

import pytest

from content_engine.core.pipeline import PipelineConfig, create_pipeline
from content_engine.core.prompts import QUALITY_ASSESSOR_SYSTEM
from content_engine.sdk.backends import UpstreamResponse


class ScriptedBackend:
    """Fake upstream service.

    Assessment calls answer with uniform category scores taken from
    ``scores`` in order (the last score repeats). Every other call returns a
    numbered markdown draft.
    """

    def __init__(self, scores=(80,), input_tokens=100, output_tokens=200, assessment_text=None):
        self.scores = list(scores)
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.assessment_text = assessment_text
        self.calls = []
        self.writes = 0
        self._lock = threading.Lock()

    def invoke(self, model, system, messages, max_tokens, temperature):
        with self._lock:
            self.calls.append({
                "model": model,
                "system": system,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            })
            if system == QUALITY_ASSESSOR_SYSTEM:
                text = self.assessment_text or self._assessment()
            else:
                self.writes += 1
                text = f"# Draft {self.writes}\n\nBody text for version {self.writes}."
        return UpstreamResponse(text, self.input_tokens, self.output_tokens)

    def _assessment(self):
        score = self.scores.pop(0) if len(self.scores) > 1 else self.scores[0]
        return json.dumps({
            "scores": {
                "factualAccuracy": score,
                "seoCompliance": score,
                "readability": score,
                "uniqueness": score,
                "engagement": score,
            },
            "issues": [],
            "suggestions": ["Tighten the introduction"],
        })

    @property
    def assessment_calls(self):
        return [c for c in self.calls if c["system"] == QUALITY_ASSESSOR_SYSTEM]


@pytest.fixture
def scripted_backend():
    """Factory for ScriptedBackend instances."""
    return ScriptedBackend


@pytest.fixture
def make_pipeline():
    """Build a pipeline on a ScriptedBackend; returns (pipeline, backend)."""
    def _make(scores=(80,), **config):
        backend = ScriptedBackend(scores=scores)
        pipeline = create_pipeline(PipelineConfig(**config), backend=backend)
        return pipeline, backend
    return _make
