"""
Prompt templates for the analyzers and the planner.

Analyzer prompts ask for a single JSON value; the field names match what
``output.render_product_docs`` and ``engine.format_manifest_summary`` read.
"""

TECH_STACK_PROMPT = """You are a senior software architect. Identify the technology stack of this project from the files below.

Return ONLY a JSON object with these fields:
{
  "framework": "primary framework or null",
  "language": "primary programming language",
  "database": "database technology or null",
  "auth": "authentication approach or null",
  "deployment": "deployment target or null",
  "package_manager": "package manager or null",
  "services": ["third-party services in use"]
}"""

GROWTH_FEATURES_PROMPT = """You are a growth engineer reviewing a codebase. Find existing features that drive user acquisition, activation, retention, referral or revenue (invites, sharing, onboarding, notifications, billing, analytics).

Return ONLY a JSON array. Each element:
{
  "feature_name": "short name",
  "file_path": "file where it is implemented",
  "detected_intent": "what the feature is for",
  "confidence_score": 0.0,
  "entry_point": "route, component or function, or null",
  "growth_potential": ["ways this feature could be extended"]
}"""

REVENUE_LEAKAGE_PROMPT = """You are a monetization analyst reviewing a codebase. Look for places where the product gives away value it could charge for: missing plan limits, unenforced tiers, free access to paid features, weak upgrade paths.

Return ONLY a JSON array. Each element:
{
  "issue": "what leaks revenue",
  "file_path": "relevant file or null",
  "impact": "high | medium | low",
  "recommendation": "how to fix it"
}"""

INDUSTRY_PROMPT = """Classify the industry and market of this project from its documentation and metadata.

Return ONLY a JSON object:
{
  "primary": "primary industry or vertical",
  "secondary": ["other relevant verticals"],
  "confidence": 0.0,
  "evidence": ["short quotes or facts supporting the classification"]
}"""

MANIFEST_PROMPT = """You are a growth strategist. Combine the analysis results below into a growth manifest for this project.

Return ONLY a JSON object:
{
  "version": "1.0",
  "project_name": "name of the project",
  "description": "one-paragraph description",
  "tech_stack": { ...the tech stack object... },
  "industry": { ...the industry object or null... },
  "current_growth_features": [ ...growth features... ],
  "growth_opportunities": [
    {"feature_name": "name", "description": "what to build", "priority": "high | medium | low"}
  ],
  "revenue_leakage": [ ...revenue leakage issues... ]
}"""

PRODUCT_OVERVIEW_PROMPT = """Summarize what this product is for, based on its documentation.

Return ONLY a JSON object:
{
  "tagline": "one line",
  "value_proposition": "why users choose it",
  "target_audience": "who it is for"
}"""

FEATURES_PROMPT = """Document the user-facing features implemented in the source files below.

Return ONLY a JSON array. Each element:
{
  "name": "feature name",
  "description": "what the user can do",
  "file_path": "main implementation file or null",
  "usage_example": "short example or null",
  "category": "grouping such as Auth, Billing, Collaboration"
}"""

DOCS_MANIFEST_PROMPT = """You are a technical writer and growth strategist. Combine the analysis results below into a documentation manifest for this project.

Return ONLY a JSON object:
{
  "version": "2.0",
  "project_name": "name of the project",
  "description": "one-paragraph description",
  "tech_stack": { ...the tech stack object... },
  "product_overview": { ...the product overview object... },
  "industry": { ...the industry object or null... },
  "features": [ ...documented features... ],
  "current_growth_features": [ ...growth features... ],
  "growth_opportunities": [
    {"feature_name": "name", "description": "what to build", "priority": "high | medium | low"}
  ]
}"""

COUNCIL_MEMO_PROMPT_TEMPLATE = """You are a council of growth advisors (product, engineering, marketing, monetization) writing a memo to the founders.

Date: {current_time}

## Project summary
{manifest_summary}
{template_section}{growth_loops_section}
Write a Markdown memo with these sections:
1. Executive summary
2. What is already working
3. The three highest-leverage growth loops to build next, with concrete implementation steps in this codebase
4. Risks and what to measure
5. A 30-day plan"""

ONBOARDING_MEMO_PROMPT_TEMPLATE = """You are an onboarding and activation specialist writing a memo for the team that owns this product.

Date: {current_time}

## Project summary
{manifest_summary}
{template_section}{growth_loops_section}
Write a Markdown memo with these sections:
1. Current first-run experience, as far as the codebase reveals it
2. Where new users are likely to drop off
3. Concrete onboarding improvements, each tied to files or components in this codebase
4. Activation metrics to instrument
5. A 14-day rollout plan"""

BUILD_PROMPT_TEMPLATE = """You are an expert AI coding assistant prompt engineer.

Based on the following growth manifest, generate a detailed implementation prompt that a developer can paste directly into an AI coding tool to implement the top-priority growth features.

The prompt should:
1. Be specific to the codebase's tech stack ({stack})
2. Reference actual file paths from the manifest
3. Include step-by-step implementation instructions
4. Focus on the highest-priority growth opportunities
5. Be copy-paste ready

## Manifest
{manifest_summary}"""

STATUS_PROMPT_TEMPLATE = """You are a growth engineering auditor. Given the following growth manifest and current codebase structure, determine which growth features and opportunities have been implemented, which are in progress, and which are missing.

Format your response as a status report:

## Growth Loop Status Report

### Implemented
- [feature]: [evidence from file tree]

### In Progress
- [feature]: [partial evidence]

### Not Started
- [feature]: [what's needed]

### Summary
- Total features: X
- Implemented: X
- In progress: X
- Not started: X

## Manifest
{manifest_summary}

## Current File Tree
{file_tree}"""
