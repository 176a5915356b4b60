"""Agents for the ShawnGPT chat assistant."""

from .router import RouterAgent, resolve_topic
from .llm_router import LLMRouterAgent
from .context_aggregator import ContextAggregator
from .composer import ComposerAgent
from .llm_composer import LLMComposerAgent

__all__ = [
    "RouterAgent",
    "resolve_topic",
    "LLMRouterAgent",
    "ContextAggregator",
    "ComposerAgent",
    "LLMComposerAgent",
]
