"""
Top-level commands built on the analysis strategies.

``run_analyze`` chains the strategies into the full analysis: four
independent analyses over the codebase, then a synthesis strategy seeded
with their results.  The remaining commands turn an existing manifest into
Markdown documents with a single model call each; they take a validated
``GrowthManifest``.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from . import analyzers
from .codebase import CodebaseExplorer
from .context import AnalysisContext
from .errors import CodebaseAccessError, EngineError
from .llm import LLMClient
from .manifest import GrowthManifest
from .pipeline import MultiStepStrategy
from .prompts import (
    BUILD_PROMPT_TEMPLATE,
    COUNCIL_MEMO_PROMPT_TEMPLATE,
    ONBOARDING_MEMO_PROMPT_TEMPLATE,
    STATUS_PROMPT_TEMPLATE,
)

logger = logging.getLogger(__name__)

# (phase, message, fraction complete 0..1)
PhaseCallback = Callable[[str, str, float], None]


@dataclass
class AnalysisResult:
    manifest: Any
    context: AnalysisContext
    product_docs: bool


def _ignore_phase(phase: str, message: str, fraction: float) -> None:
    return None


def _run_phase(
    phase: str,
    strategy: MultiStepStrategy,
    explorer: CodebaseExplorer,
    llm: LLMClient,
    request: str,
    on_phase: PhaseCallback,
    fraction: float,
    initial_context: Optional[AnalysisContext] = None,
) -> AnalysisContext:
    def forward(label: str, percent: float, step: int, total: int) -> None:
        on_phase(phase, label, fraction)

    return strategy.run_with_context(explorer, llm, request, initial_context, forward)


def run_analyze(
    explorer: CodebaseExplorer,
    llm: LLMClient,
    product_docs: bool = False,
    on_phase: Optional[PhaseCallback] = None,
) -> AnalysisResult:
    """Run the full analysis and return the manifest with its synthesis context."""
    notify = on_phase or _ignore_phase

    independent = (
        ("tech_stack", analyzers.create_tech_stack_analyzer, "Detect tech stack", analyzers.TECH_STACK_KEY),
        ("growth_features", analyzers.create_growth_features_analyzer, "Detect growth features",
         analyzers.GROWTH_FEATURES_KEY),
        ("revenue_leakage", analyzers.create_revenue_leakage_analyzer, "Detect revenue leakage",
         analyzers.REVENUE_LEAKAGE_KEY),
        ("industry", analyzers.create_industry_analyzer, "Detect industry", analyzers.INDUSTRY_KEY),
    )
    manifest_context = AnalysisContext("Generate Manifest")
    files_read: List[str] = []
    tokens_used = 0
    for i, (phase, factory, request, key) in enumerate(independent):
        notify(phase, f"Analyzing {phase.replace('_', ' ')}...", 0.1 + 0.2 * i)
        result = _run_phase(phase, factory(), explorer, llm, request, notify, 0.2 + 0.2 * i)
        if key in result:
            manifest_context.set(key, result.get(key))
        files_read.extend(result.metadata.files_read)
        tokens_used += result.metadata.tokens_used

    if product_docs:
        notify("product_overview", "Analyzing product overview...", 0.85)
        overview = _run_phase(
            "product_overview", analyzers.create_product_overview_analyzer(), explorer, llm,
            "Product Overview", notify, 0.85,
        )
        notify("features", "Documenting features...", 0.9)
        features = _run_phase(
            "features", analyzers.create_features_analyzer(), explorer, llm, "Features", notify, 0.9,
        )
        for source, key in ((overview, analyzers.PRODUCT_OVERVIEW_KEY), (features, analyzers.FEATURES_KEY)):
            if key in source:
                manifest_context.set(key, source.get(key))
            files_read.extend(source.metadata.files_read)
            tokens_used += source.metadata.tokens_used
        strategy, request, key = (
            analyzers.create_docs_manifest_analyzer(), "Generate Docs Manifest", analyzers.DOCS_MANIFEST_KEY,
        )
        notify("manifest", "Generating docs manifest...", 0.95)
    else:
        strategy, request, key = analyzers.create_manifest_analyzer(), "Generate Manifest", analyzers.MANIFEST_KEY
        notify("manifest", "Generating manifest...", 0.95)

    manifest_context.metadata.files_read.extend(files_read)
    manifest_context.metadata.tokens_used += tokens_used
    final = _run_phase("manifest", strategy, explorer, llm, request, notify, 0.95, manifest_context)
    if key not in final:
        raise EngineError("Failed to generate manifest")
    logger.info(
        "Analysis complete: %d files read, ~%d tokens", len(final.metadata.files_read), final.metadata.tokens_used
    )
    return AnalysisResult(manifest=final.get(key), context=final, product_docs=product_docs)


# ----------------
# Manifest rendering
# ----------------
def format_manifest_summary(manifest: GrowthManifest) -> str:
    """Short summary used by the planner memos."""
    stack = manifest.tech_stack
    lines: List[str] = [f"**Project:** {manifest.project_name}"]
    if manifest.description:
        lines.append(f"**Description:** {manifest.description}")

    lines.append("\n**Tech Stack:**")
    lines.append(f"- Language: {stack.language}")
    for label, value in (("Framework", stack.framework), ("Database", stack.database), ("Auth", stack.auth)):
        if value:
            lines.append(f"- {label}: {value}")

    features = manifest.current_growth_features
    if features:
        lines.append(f"\n**Existing Growth Features:** {len(features)} detected")
        for feat in features[:3]:
            lines.append(f"- {feat.feature_name}")

    opportunities = manifest.growth_opportunities
    if opportunities:
        lines.append(f"\n**Growth Opportunities:** {len(opportunities)} identified")
        for opp in opportunities[:3]:
            lines.append(f"- {opp.feature_name} (priority: {opp.priority})")
    return "\n".join(lines)


def format_manifest_for_prompt(manifest: GrowthManifest) -> str:
    """Complete listing used by the build and status prompts."""
    stack = manifest.tech_stack
    lines: List[str] = [f"**Project:** {manifest.project_name}"]
    if manifest.description:
        lines.append(f"**Description:** {manifest.description}")
    lines.append(f"\n**Tech Stack:** {stack.language} {stack.framework or ''}".rstrip())
    if stack.database:
        lines.append(f"**Database:** {stack.database}")

    if manifest.current_growth_features:
        lines.append(f"\n**Existing Growth Features ({len(manifest.current_growth_features)}):**")
        for feat in manifest.current_growth_features:
            lines.append(
                f"- {feat.feature_name} (in {feat.file_path}, confidence: {feat.confidence_score * 100:.0f}%)"
            )

    if manifest.growth_opportunities:
        lines.append(f"\n**Growth Opportunities ({len(manifest.growth_opportunities)}):**")
        for opp in manifest.growth_opportunities:
            lines.append(f"- [{opp.priority.upper()}] {opp.feature_name}: {opp.description}")

    if manifest.revenue_leakage:
        lines.append(f"\n**Revenue Leakage ({len(manifest.revenue_leakage)}):**")
        for leak in manifest.revenue_leakage:
            lines.append(f"- [{leak.impact.upper()}] {leak.issue}: {leak.recommendation}")
    return "\n".join(lines)


# ----------------
# Single-call commands
# ----------------
def generate_plan(llm: LLMClient, manifest: GrowthManifest, onboarding: bool = False) -> str:
    template = ONBOARDING_MEMO_PROMPT_TEMPLATE if onboarding else COUNCIL_MEMO_PROMPT_TEMPLATE
    prompt = (
        template.replace("{current_time}", dt.datetime.now().astimezone().isoformat())
        .replace("{manifest_summary}", format_manifest_summary(manifest))
        .replace("{template_section}", "")
        .replace("{growth_loops_section}", "")
    )
    return llm.generate(prompt)


def generate_build_prompt(llm: LLMClient, manifest: GrowthManifest) -> str:
    stack = manifest.tech_stack
    stack_text = stack.language
    if stack.framework:
        stack_text += f", {stack.framework}"
    prompt = BUILD_PROMPT_TEMPLATE.format(stack=stack_text, manifest_summary=format_manifest_for_prompt(manifest))
    return llm.generate(prompt)


def generate_status_report(llm: LLMClient, manifest: GrowthManifest, explorer: CodebaseExplorer) -> str:
    try:
        file_tree = explorer.get_directory_tree(".", 4)
    except CodebaseAccessError as exc:
        logger.warning("Could not render file tree: %s", exc)
        file_tree = ""
    prompt = STATUS_PROMPT_TEMPLATE.format(
        manifest_summary=format_manifest_for_prompt(manifest),
        file_tree=file_tree,
    )
    return llm.generate(prompt)
