"""
Sequential execution of analysis steps.

A ``MultiStepStrategy`` runs its steps in order against one
``AnalysisContext``.  Strategies compose by handing the final context of
one run to the next as its initial context: the four independent analyses
each produce a result key, and the manifest strategy runs on a context
seeded with those keys.

The executor owns the run metadata.  Steps receive a metered view of the
model client, so every completed call adds its prompt and response token
estimates to ``metadata.tokens_used``; after a ``ReadFilesStep`` the paths
of its successful records are appended to ``metadata.files_read``.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .codebase import CodebaseExplorer
from .context import AnalysisContext, AnalysisMetadata
from .llm import LLMClient
from .steps import AnalysisStep, ReadFilesStep

logger = logging.getLogger(__name__)

# (label, percent complete, 1-based step number, step count)
ProgressCallback = Callable[[str, float, int, int], None]


def _no_progress(label: str, percent: float, step: int, total: int) -> None:
    return None


class MeteredLLM(LLMClient):
    """Wraps a client and charges each completed call to a run's metadata."""

    def __init__(self, inner: LLMClient, metadata: AnalysisMetadata) -> None:
        self.inner = inner
        self.model = inner.model_name
        self.metadata = metadata

    @property
    def provider_name(self) -> str:
        return self.inner.provider_name

    def estimate_tokens(self, text: str) -> int:
        return self.inner.estimate_tokens(text)

    def generate(self, prompt: str) -> str:
        response = self.inner.generate(prompt)
        self.metadata.tokens_used += self.inner.estimate_tokens(prompt) + self.inner.estimate_tokens(response)
        return response


def _paths_read(step: AnalysisStep, context: AnalysisContext) -> List[str]:
    if not isinstance(step, ReadFilesStep):
        return []
    records = context.get(step.output_key)
    if not isinstance(records, list):
        return []
    return [
        record["path"]
        for record in records
        if isinstance(record, dict) and "error" not in record and isinstance(record.get("path"), str)
    ]


class MultiStepStrategy:
    """An ordered, fixed list of steps."""

    def __init__(self, steps: Sequence[AnalysisStep]) -> None:
        self._steps: Tuple[AnalysisStep, ...] = tuple(steps)

    @property
    def steps(self) -> Tuple[AnalysisStep, ...]:
        return self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def run(
        self,
        codebase: CodebaseExplorer,
        llm: LLMClient,
        request: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AnalysisContext:
        return self.run_with_context(codebase, llm, request, None, on_progress)

    def run_with_context(
        self,
        codebase: CodebaseExplorer,
        llm: LLMClient,
        request: str,
        initial_context: Optional[AnalysisContext] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AnalysisContext:
        """Run every step in order and return the context.

        The first failing step aborts the run and its exception propagates
        unchanged.  Values already written stay in the context; nothing is
        rolled back and nothing is retried.
        """
        progress = on_progress or _no_progress
        context = initial_context if initial_context is not None else AnalysisContext(request)
        context.metadata.model_name = llm.model_name
        context.metadata.provider_name = llm.provider_name
        total = len(self._steps)
        context.metadata.total_steps = total
        metered = MeteredLLM(llm, context.metadata)

        for i, step in enumerate(self._steps):
            progress(f"Executing {step.name}", i / total * 100.0, i + 1, total)
            logger.info("[%d/%d] %s (%s)", i + 1, total, step.name, context.request)
            step.execute(codebase, metered, context)
            context.metadata.files_read.extend(_paths_read(step, context))

        progress("Complete", 100.0, total, total)
        logger.debug(
            "Run finished with keys: %s (~%d tokens)", ", ".join(context.keys()), context.metadata.tokens_used
        )
        return context
