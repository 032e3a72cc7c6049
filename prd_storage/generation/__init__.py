"""
Feature and PRD generation over an opaque text-completion service.
"""

from .completion import (
    CompletionOptions,
    CompletionService,
    OpenAICompletionService,
)
from .generator import Brief, FeatureGenerator, PRDGenerator
from .parsing import (
    GeneratedFeatureSet,
    parse_feature_list,
    parse_json_response,
    parse_prd,
    strip_code_fences,
)

__all__ = [
    "CompletionOptions",
    "CompletionService",
    "OpenAICompletionService",
    "Brief",
    "FeatureGenerator",
    "PRDGenerator",
    "GeneratedFeatureSet",
    "parse_feature_list",
    "parse_json_response",
    "parse_prd",
    "strip_code_fences",
]
