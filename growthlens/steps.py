"""
The three kinds of analysis step.

A strategy is built from these and nothing else:

* ``SelectFilesStep`` gathers candidate files by glob and, when there are
  more than the budget allows, asks the model to pick the most relevant.
* ``ReadFilesStep`` reads a list of files produced by an earlier step.
* ``AnalyzeStep`` folds earlier results into a prompt, calls the model once
  and stores whatever JSON it can recover from the answer.

Steps are frozen; everything that changes during a run lives in the
``AnalysisContext`` passed to ``execute``.  Steps never touch the run
metadata: the executor meters model calls and collects the paths read.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from .codebase import CodebaseExplorer
from .context import AnalysisContext
from .errors import CodebaseAccessError, StepError
from .json_extract import extract_json, parse_string_array
from .llm import LLMClient

logger = logging.getLogger(__name__)

MAX_FILE_CHARS = 50_000
TRUNCATION_MARKER = "... (truncated)"


class AnalysisStep(ABC):
    """One unit of work reading and writing named values in the context."""

    name: str = ""

    @abstractmethod
    def execute(self, codebase: CodebaseExplorer, llm: LLMClient, context: AnalysisContext) -> None:
        ...


@dataclass(frozen=True)
class SelectFilesStep(AnalysisStep):
    """Collect files matching ``patterns`` and keep at most ``max_files`` of them."""

    prompt: str
    patterns: Tuple[str, ...]
    max_files: int
    output_key: str
    name: str = field(default="Select Files", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "patterns", tuple(self.patterns))

    def gather_candidates(self, codebase: CodebaseExplorer) -> List[str]:
        candidates = set()
        for pattern in self.patterns:
            candidates.update(codebase.search_files(pattern))
        return sorted(candidates)

    def build_ranking_prompt(self, candidates: Sequence[str]) -> str:
        candidate_text = "\n".join(candidates)
        return (
            f"{self.prompt}\n\nAvailable files:\n{candidate_text}\n\n"
            f"Select the most relevant files (max {self.max_files}). "
            "Return strictly a JSON array of file paths."
        )

    def execute(self, codebase: CodebaseExplorer, llm: LLMClient, context: AnalysisContext) -> None:
        candidates = self.gather_candidates(codebase)
        if len(candidates) <= self.max_files:
            selected = candidates
        else:
            prompt = self.build_ranking_prompt(candidates)
            response = llm.generate(prompt)
            ranked = parse_string_array(response)
            if ranked is None:
                logger.warning(
                    "Could not parse file ranking for %s; keeping first %d of %d candidates",
                    self.output_key,
                    self.max_files,
                    len(candidates),
                )
                selected = candidates[: self.max_files]
            else:
                selected = ranked[: self.max_files]
        logger.info("Selected %d files for %s", len(selected), self.output_key)
        context.set(self.output_key, selected)


@dataclass(frozen=True)
class ReadFilesStep(AnalysisStep):
    """Read every path listed under ``source_key``; failures are recorded, not raised."""

    source_key: str
    output_key: str
    max_chars: int = MAX_FILE_CHARS
    name: str = field(default="Read Files", init=False)

    def _paths(self, context: AnalysisContext) -> List[str]:
        value = context.require(self.source_key)
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            raise StepError(f"Expected a list of file paths under '{self.source_key}'")
        return value

    def execute(self, codebase: CodebaseExplorer, llm: LLMClient, context: AnalysisContext) -> None:
        results: List[dict] = []
        for file_path in self._paths(context):
            try:
                content = codebase.read_file(file_path)
            except (CodebaseAccessError, OSError, UnicodeDecodeError) as exc:
                logger.debug("Could not read %s: %s", file_path, exc)
                results.append({"path": file_path, "error": str(exc)})
                continue
            record: dict = {"path": file_path, "content": content}
            if len(content) > self.max_chars:
                record["content"] = content[: self.max_chars] + TRUNCATION_MARKER
                record["truncated"] = True
            results.append(record)
        context.set(self.output_key, results)


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _is_file_bundle_key(key: str) -> bool:
    return "contents" in key or "files" in key


@dataclass(frozen=True)
class AnalyzeStep(AnalysisStep):
    """Ask the model to analyse earlier results and store the JSON it returns.

    Keys whose name contains ``contents`` or ``files`` are treated as file
    bundles: a list of ``{path, content}`` records is rendered as
    ``--- path ---`` blocks.  Any other key is appended as a labelled,
    pretty-printed JSON value.  Keys missing from the context are skipped.
    """

    prompt: str
    output_key: str
    source_keys: Tuple[str, ...] = ()
    name: str = field(default="Analyze", init=False)

    def __init__(self, prompt: str, output_key: str, source_key: Optional[str] = None) -> None:
        object.__setattr__(self, "prompt", prompt)
        object.__setattr__(self, "output_key", output_key)
        object.__setattr__(self, "source_keys", (source_key,) if source_key else ())

    @classmethod
    def with_keys(cls, prompt: str, output_key: str, source_keys: Sequence[str]) -> "AnalyzeStep":
        step = cls(prompt, output_key)
        object.__setattr__(step, "source_keys", tuple(source_keys))
        return step

    def build_prompt(self, context: AnalysisContext) -> str:
        parts: List[str] = [self.prompt]
        for key in self.source_keys:
            if key not in context:
                continue
            data = context.get(key)
            if _is_file_bundle_key(key):
                if isinstance(data, list):
                    file_context = ""
                    for item in data:
                        if not isinstance(item, dict):
                            continue
                        path, content = item.get("path"), item.get("content")
                        if isinstance(path, str) and isinstance(content, str):
                            file_context += f"\n--- {path} ---\n{content}\n"
                    parts.append(f"\n\nFiles ({key}) :\n{file_context}")
                else:
                    parts.append(f"\n\n{key} (Context):\n{_pretty(data)}")
            else:
                parts.append(f"\n\n{key} (Analysis Result):\n{_pretty(data)}")
        return "".join(parts)

    def execute(self, codebase: CodebaseExplorer, llm: LLMClient, context: AnalysisContext) -> None:
        prompt = self.build_prompt(context)
        response = llm.generate(prompt)
        extraction = extract_json(response)
        if extraction.ok:
            logger.debug("Parsed %s via %s", self.output_key, extraction.strategy)
            context.set(self.output_key, extraction.value)
        else:
            logger.warning("No JSON found in response for %s; storing raw text", self.output_key)
            context.set(self.output_key, response)
