"""
growthlens package.

This package analyses a source-code tree with a text-generation model and
accumulates structured findings about it: technology stack, existing growth
features, revenue leakage and industry, combined into a growth manifest.

The analysis is a set of strategies, each an ordered list of steps that
read and write named values in a shared ``AnalysisContext``:

* File selection by glob, narrowed by the model when over budget.
* File reading, with per-file errors recorded rather than raised.
* Model analysis, with best-effort JSON extraction from the answer.

See `cli.py` for the entry point and `engine.py` for how the strategies
are chained.
"""

from .context import AnalysisContext, AnalysisMetadata
from .errors import (
    CodebaseAccessError,
    EngineError,
    GrowthLensError,
    ManifestError,
    MissingContextKeyError,
    ProviderError,
    StepError,
)
from .manifest import DocsManifest, GrowthManifest
from .pipeline import MultiStepStrategy
from .steps import AnalysisStep, AnalyzeStep, ReadFilesStep, SelectFilesStep

__version__ = "0.1.0"

__all__ = [
    "AnalysisContext",
    "AnalysisMetadata",
    "AnalysisStep",
    "AnalyzeStep",
    "CodebaseAccessError",
    "DocsManifest",
    "EngineError",
    "GrowthLensError",
    "GrowthManifest",
    "ManifestError",
    "MissingContextKeyError",
    "MultiStepStrategy",
    "ProviderError",
    "ReadFilesStep",
    "SelectFilesStep",
    "StepError",
    "cli",
]
