"""
Entry point for the growthlens command-line interface (exposed as `growthlens`).

growthlens analyses a project with a text-generation model and writes the
findings next to it.  Four commands are available:

* ``analyze`` runs the full analysis and writes ``growth-manifest.json``
  (plus ``product-docs.md`` with ``--product-docs``).
* ``plan`` turns a manifest into a growth memo, ``growth-plan.md``.
* ``build`` turns a manifest into a copy-paste implementation prompt,
  ``implementation-prompt.md``.
* ``status`` compares a manifest with the current file tree and writes
  ``growth-status.md``.

Usage examples::

    growthlens analyze path/to/project --provider openai --model gpt-4o
    growthlens analyze . --product-docs --exclude fixtures --exclude web/legacy
    growthlens plan . --onboarding
    # (during development)
    # python -m growthlens.cli status .

Progress and results are printed to stdout as one JSON object per line so
that wrappers can follow a run; logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import engine
from .codebase import CodebaseExplorer
from .config import EngineConfig
from .errors import EngineError, GrowthLensError, ManifestError
from .llm import LLMClient, create_llm_client
from .manifest import GrowthManifest, stamp_manifest
from .output import write_file, write_manifest_json, write_product_docs

logger = logging.getLogger("growthlens.cli")

MANIFEST_FILE = "growth-manifest.json"
PRODUCT_DOCS_FILE = "product-docs.md"
PLAN_FILE = "growth-plan.md"
BUILD_FILE = "implementation-prompt.md"
STATUS_FILE = "growth-status.md"


def emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False), flush=True)


def emit_progress(phase: str, message: str, fraction: float, step: int = 0, total_steps: int = 0) -> None:
    emit({
        "type": "progress",
        "phase": phase,
        "step": step,
        "total_steps": total_steps,
        "progress": fraction,
        "message": message,
    })


def emit_result(**paths: Optional[str]) -> None:
    payload: Dict[str, Any] = {"type": "result"}
    for name in ("manifest_path", "template_path", "docs_path", "plan_path"):
        payload[name] = paths.get(name)
    emit(payload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="growthlens",
        description="Analyse a codebase with a language model and write a growth manifest.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.environ.get("GROWTHLENS_LOGLEVEL", "INFO").upper(),
        help="Logging verbosity (default from env GROWTHLENS_LOGLEVEL or INFO).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("root", type=Path, help="Root directory of the project to analyse.")
    common.add_argument("--provider", type=str, default=None, help="openai, anthropic, gemini, ollama, lmstudio or generic.")
    common.add_argument("--model", type=str, default=None, help="Model identifier (default: gpt-4o).")
    common.add_argument("--api-key", type=str, default=None, help="Provider API key (default from the environment).")
    common.add_argument("--base-url", type=str, default=None, help="Override the provider endpoint.")
    common.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help=(
            "Directory for generated files, relative to the current directory "
            "(default: <root>/skene-context; output_dir in the config file is relative to <root>)."
        ),
    )
    common.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="FOLDER",
        help="Additional folder name or relative path to ignore. May be repeated.",
    )

    analyze = sub.add_parser("analyze", parents=[common], help="Run the full codebase analysis.")
    analyze.add_argument(
        "--product-docs",
        action="store_true",
        help="Also analyse product overview and features and write product-docs.md.",
    )
    analyze.add_argument(
        "--dump-context",
        action="store_true",
        help="Write the final analysis context to analysis-context.json for debugging.",
    )

    plan = sub.add_parser("plan", parents=[common], help="Write a growth plan memo from a manifest.")
    plan.add_argument("--manifest", type=Path, default=None, help="Manifest path (default: <output-dir>/growth-manifest.json).")
    plan.add_argument("--onboarding", action="store_true", help="Write an onboarding-focused memo instead.")

    build = sub.add_parser("build", parents=[common], help="Write an implementation prompt from a manifest.")
    build.add_argument("--manifest", type=Path, default=None, help="Manifest path (default: <output-dir>/growth-manifest.json).")

    status = sub.add_parser("status", parents=[common], help="Check which growth features are implemented.")
    status.add_argument("--manifest", type=Path, default=None, help="Manifest path (default: <output-dir>/growth-manifest.json).")
    return parser


def configure_logging(log_level: str) -> None:
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="[%(levelname)s] %(asctime)s %(name)s:%(lineno)d - %(message)s",
    )
    logging.getLogger().setLevel(level)
    logging.getLogger("httpx").setLevel(level)
    logging.getLogger("openai").setLevel(level)
    # Also surface httpcore (wire) when DEBUG to help diagnose networking
    if level <= logging.DEBUG:
        logging.getLogger("httpcore").setLevel(level)


def load_config(args: argparse.Namespace, root: Path) -> EngineConfig:
    overrides = {
        "provider": args.provider,
        "model": args.model,
        "api_key": args.api_key,
        "base_url": args.base_url,
        "output_dir": str(args.output_dir.resolve()) if args.output_dir else None,
        "exclude_folders": args.exclude,
        "product_docs": getattr(args, "product_docs", None),
    }
    return EngineConfig.load(root, overrides)


def make_llm(config: EngineConfig) -> LLMClient:
    if config.requires_api_key and not config.api_key:
        raise EngineError(f"No API key configured for provider '{config.provider}'.")
    return create_llm_client(config.provider, config.api_key or "", config.model, config.base_url)


def load_manifest(path: Path) -> GrowthManifest:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise EngineError(f"No manifest found at {path}. Run analysis first.") from None
    except ValueError as exc:
        raise EngineError(f"Manifest at {path} is not valid JSON: {exc}") from exc
    try:
        return GrowthManifest.from_dict(data)
    except ManifestError as exc:
        raise ManifestError(f"Invalid manifest at {path}: {exc}") from exc


def run_analyze(args: argparse.Namespace, config: EngineConfig, explorer: CodebaseExplorer) -> None:
    llm = make_llm(config)
    result = engine.run_analyze(explorer, llm, product_docs=config.product_docs, on_phase=emit_progress)

    manifest = stamp_manifest(result.manifest, docs=result.product_docs)
    if not isinstance(manifest, dict):
        logger.warning("Model did not return a JSON object for the manifest; writing it unchanged")
    manifest_path = config.output_dir / MANIFEST_FILE
    write_manifest_json(manifest_path, manifest)
    logger.info("Manifest written to %s", manifest_path)
    docs_path = None
    if result.product_docs:
        docs_path = config.output_dir / PRODUCT_DOCS_FILE
        write_product_docs(docs_path, manifest)
        logger.info("Product docs written to %s", docs_path)
    if getattr(args, "dump_context", False):
        write_manifest_json(config.output_dir / "analysis-context.json", result.context.to_dict())
    emit_result(manifest_path=str(manifest_path), docs_path=str(docs_path) if docs_path else None)


def run_plan(args: argparse.Namespace, config: EngineConfig, explorer: CodebaseExplorer) -> None:
    emit_progress("plan", "Loading manifest...", 0.1)
    manifest_path = args.manifest or config.output_dir / MANIFEST_FILE
    manifest = load_manifest(manifest_path)
    emit_progress("plan", "Connecting to LLM provider...", 0.2)
    llm = make_llm(config)
    emit_progress("plan", "Generating growth plan...", 0.4)
    content = engine.generate_plan(llm, manifest, onboarding=args.onboarding)
    emit_progress("plan", "Writing plan to disk...", 0.9)
    plan_path = config.output_dir / PLAN_FILE
    write_file(plan_path, content)
    emit_progress("plan", "Growth plan generated", 1.0)
    emit_result(manifest_path=str(manifest_path), plan_path=str(plan_path))


def run_build(args: argparse.Namespace, config: EngineConfig, explorer: CodebaseExplorer) -> None:
    emit_progress("build", "Loading manifest...", 0.1)
    manifest_path = args.manifest or config.output_dir / MANIFEST_FILE
    manifest = load_manifest(manifest_path)
    emit_progress("build", "Connecting to LLM provider...", 0.2)
    llm = make_llm(config)
    emit_progress("build", "Generating implementation prompt...", 0.4)
    content = engine.generate_build_prompt(llm, manifest)
    emit_progress("build", "Writing implementation prompt...", 0.9)
    output_path = config.output_dir / BUILD_FILE
    write_file(output_path, content)
    emit_progress("build", "Implementation prompt generated", 1.0)
    emit_result(manifest_path=str(manifest_path), template_path=str(output_path))


def run_status(args: argparse.Namespace, config: EngineConfig, explorer: CodebaseExplorer) -> None:
    emit_progress("status", "Loading manifest...", 0.1)
    manifest_path = args.manifest or config.output_dir / MANIFEST_FILE
    manifest = load_manifest(manifest_path)
    emit_progress("status", "Scanning codebase for implementations...", 0.3)
    llm = make_llm(config)
    emit_progress("status", "Checking growth loop implementation status...", 0.5)
    content = engine.generate_status_report(llm, manifest, explorer)
    emit_progress("status", "Writing status report...", 0.9)
    output_path = config.output_dir / STATUS_FILE
    write_file(output_path, content)
    emit_progress("status", "Status check complete", 1.0)
    emit_result(manifest_path=str(manifest_path), docs_path=str(output_path))


COMMANDS = {
    "analyze": run_analyze,
    "plan": run_plan,
    "build": run_build,
    "status": run_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Primary CLI entry point.

    Parses arguments, loads configuration, runs the requested command and
    returns an exit code.  Any failure is reported once, as an ``error``
    line on stdout and in the log.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    root = args.root.resolve()
    if not root.exists() or not root.is_dir():
        logger.error("The specified root directory %s does not exist or is not a directory.", root)
        emit({"type": "error", "message": f"Not a directory: {root}", "code": None})
        return 1

    config = load_config(args, root)
    logger.info(
        "Execution context: command=%s | root=%s | provider=%s | model=%s | output=%s | config=%s",
        args.command,
        root,
        config.provider,
        config.model,
        config.output_dir,
        config.config_path or "defaults",
    )
    explorer = CodebaseExplorer(root, config.exclude.exclude_folders)

    try:
        COMMANDS[args.command](args, config, explorer)
    except (GrowthLensError, ValueError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        emit({"type": "error", "message": str(exc), "code": None})
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
