"""Line re-wrapping for comment and markdown chunks."""

from .engine import DEFAULT_MAX_WIDTH, ReflowEngine, ReflowState, reflow_text

__all__ = ["DEFAULT_MAX_WIDTH", "ReflowEngine", "ReflowState", "reflow_text"]
