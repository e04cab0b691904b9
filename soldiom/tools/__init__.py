"""Single-shot AI tools backed by the secondary inference service."""

from soldiom.tools.inference import InferenceClient, InferenceError

__all__ = ["InferenceClient", "InferenceError"]
