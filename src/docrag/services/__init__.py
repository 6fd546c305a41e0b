"""Service layer orchestrations for docrag."""

from .boundary import BoundaryTimeouts, call_boundary
from .documents import DocumentCatalog
from .generation import GenerationBackend, GenerationConfig, QwenGenerator, TemplateGenerator
from .query import PromptBuilder, PromptBuilderConfig, QueryService

__all__ = [
    "BoundaryTimeouts",
    "DocumentCatalog",
    "GenerationBackend",
    "GenerationConfig",
    "PromptBuilder",
    "PromptBuilderConfig",
    "QueryService",
    "QwenGenerator",
    "TemplateGenerator",
    "call_boundary",
]
