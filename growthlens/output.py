"""
Writing results to disk.

Manifests are stored as pretty-printed JSON; documents as Markdown.  Parent
directories are created as needed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List


def write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(content)


def write_manifest_json(path: Path, manifest: Any) -> None:
    write_file(path, json.dumps(manifest, indent=2, ensure_ascii=False))


def render_product_docs(manifest: Any) -> str:
    """Render a docs manifest as a Markdown product page.

    Sections with no data are left out.  The manifest may come straight
    from a model, so every field is optional.
    """
    m = manifest if isinstance(manifest, dict) else {}
    md: List[str] = [f"# {m.get('project_name') or 'Project'}\n"]
    if isinstance(m.get("description"), str):
        md.append(f"{m['description']}\n")

    overview = m.get("product_overview")
    if isinstance(overview, dict):
        md.append("## Product Overview\n")
        for label, field_name in (
            ("Tagline", "tagline"),
            ("Value Proposition", "value_proposition"),
            ("Target Audience", "target_audience"),
        ):
            if isinstance(overview.get(field_name), str):
                md.append(f"**{label}:** {overview[field_name]}\n")

    features = m.get("features")
    if isinstance(features, list):
        md.append("## Features\n")
        for feat in features:
            if not isinstance(feat, dict) or not isinstance(feat.get("name"), str):
                continue
            block = f"### {feat['name']}\n"
            if isinstance(feat.get("description"), str):
                block += f"{feat['description']}\n"
            if isinstance(feat.get("category"), str):
                block += f"\n*Category: {feat['category']}*\n"
            md.append(block)

    stack = m.get("tech_stack")
    if isinstance(stack, dict):
        md.append("## Tech Stack\n")
        rows = []
        for label, field_name in (
            ("Language", "language"),
            ("Framework", "framework"),
            ("Database", "database"),
            ("Auth", "auth"),
            ("Deployment", "deployment"),
        ):
            if isinstance(stack.get(field_name), str):
                rows.append(f"- **{label}:** {stack[field_name]}")
        md.append("\n".join(rows) + "\n")

    return "\n".join(md)


def write_product_docs(path: Path, manifest: Any) -> None:
    write_file(path, render_product_docs(manifest))
