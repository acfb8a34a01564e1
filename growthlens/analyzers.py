"""
The catalogue of analysis strategies.

Each factory returns a fresh ``MultiStepStrategy``.  The four file-based
analyzers follow the same select -> read -> analyze shape; the manifest
analyzers only synthesise results already present in a seeded context.
"""

from __future__ import annotations

from .pipeline import MultiStepStrategy
from .prompts import (
    DOCS_MANIFEST_PROMPT,
    FEATURES_PROMPT,
    GROWTH_FEATURES_PROMPT,
    INDUSTRY_PROMPT,
    MANIFEST_PROMPT,
    PRODUCT_OVERVIEW_PROMPT,
    REVENUE_LEAKAGE_PROMPT,
    TECH_STACK_PROMPT,
)
from .steps import AnalyzeStep, ReadFilesStep, SelectFilesStep

# Result keys each analyzer leaves in its final context
TECH_STACK_KEY = "tech_stack"
GROWTH_FEATURES_KEY = "current_growth_features"
REVENUE_LEAKAGE_KEY = "revenue_leakage"
INDUSTRY_KEY = "industry"
PRODUCT_OVERVIEW_KEY = "product_overview"
FEATURES_KEY = "features"
MANIFEST_KEY = "manifest"
DOCS_MANIFEST_KEY = "docs_manifest"


def _select_read_analyze(
    selection_prompt: str,
    patterns: list[str],
    max_files: int,
    prefix: str,
    analysis_prompt: str,
    output_key: str,
) -> MultiStepStrategy:
    files_key = f"{prefix}_files"
    contents_key = f"{prefix}_contents"
    return MultiStepStrategy([
        SelectFilesStep(selection_prompt, tuple(patterns), max_files, files_key),
        ReadFilesStep(files_key, contents_key),
        AnalyzeStep(analysis_prompt, output_key, contents_key),
    ])


def create_tech_stack_analyzer() -> MultiStepStrategy:
    return _select_read_analyze(
        "Select configuration files and representative source files that reveal the technology stack.",
        [
            "package.json", "requirements.txt", "pyproject.toml", "Cargo.toml", "go.mod",
            "Gemfile", "composer.json", "*.config.js", "*.config.ts", "tsconfig.json",
            "next.config.*", "vite.config.*", "docker-compose.yml", "Dockerfile",
            ".env.example", "vercel.json", "netlify.toml", "fly.toml", "render.yaml",
            "**/*.py", "**/*.js", "**/*.ts", "**/*.tsx", "**/*.go", "**/*.rs", "**/*.rb",
        ],
        15,
        "tech_stack",
        TECH_STACK_PROMPT,
        TECH_STACK_KEY,
    )


def create_growth_features_analyzer() -> MultiStepStrategy:
    return _select_read_analyze(
        "Select source files that might contain growth-related features.",
        [
            "**/*.py", "**/*.ts", "**/*.tsx", "**/*.js", "**/*.jsx",
            "**/routes/**/*", "**/api/**/*", "**/features/**/*",
            "**/components/**/*", "**/pages/**/*", "**/app/**/*",
        ],
        30,
        "growth",
        GROWTH_FEATURES_PROMPT,
        GROWTH_FEATURES_KEY,
    )


def create_revenue_leakage_analyzer() -> MultiStepStrategy:
    return _select_read_analyze(
        "Select source files that might reveal revenue leakage or pricing logic.",
        [
            "**/*pricing*", "**/*billing*", "**/*subscription*", "**/*payment*",
            "**/*plan*", "**/*tier*", "**/*upgrade*", "**/*limit*",
            "**/*user*", "**/*auth*", "**/*api/**/*",
        ],
        20,
        "revenue",
        REVENUE_LEAKAGE_PROMPT,
        REVENUE_LEAKAGE_KEY,
    )


def create_industry_analyzer() -> MultiStepStrategy:
    return _select_read_analyze(
        "Select documentation and metadata files to classify the industry.",
        [
            "README.md", "package.json", "pyproject.toml", "Cargo.toml",
            "go.mod", "setup.py", "requirements.txt",
            "docs/**/*", "website/**/*",
        ],
        10,
        "industry",
        INDUSTRY_PROMPT,
        INDUSTRY_KEY,
    )


def create_product_overview_analyzer() -> MultiStepStrategy:
    return _select_read_analyze(
        "Select documentation files for product overview.",
        ["README.md", "package.json", "docs/**/*", "about/**/*"],
        10,
        "overview",
        PRODUCT_OVERVIEW_PROMPT,
        PRODUCT_OVERVIEW_KEY,
    )


def create_features_analyzer() -> MultiStepStrategy:
    return _select_read_analyze(
        "Select source files to document user-facing features.",
        [
            "**/*.py", "**/*.ts", "**/*.tsx", "**/*.js",
            "**/routes/**/*", "**/api/**/*", "**/features/**/*",
            "**/components/**/*",
        ],
        20,
        "features",
        FEATURES_PROMPT,
        FEATURES_KEY,
    )


def create_manifest_analyzer() -> MultiStepStrategy:
    return MultiStepStrategy([
        AnalyzeStep.with_keys(
            MANIFEST_PROMPT,
            MANIFEST_KEY,
            [TECH_STACK_KEY, GROWTH_FEATURES_KEY, REVENUE_LEAKAGE_KEY, INDUSTRY_KEY],
        ),
    ])


def create_docs_manifest_analyzer() -> MultiStepStrategy:
    return MultiStepStrategy([
        AnalyzeStep.with_keys(
            DOCS_MANIFEST_PROMPT,
            DOCS_MANIFEST_KEY,
            [TECH_STACK_KEY, PRODUCT_OVERVIEW_KEY, INDUSTRY_KEY, FEATURES_KEY, GROWTH_FEATURES_KEY],
        ),
    ])
