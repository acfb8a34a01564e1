import json
from pathlib import Path

from growthlens.output import render_product_docs, write_manifest_json, write_product_docs


def test_write_manifest_json_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "growth-manifest.json"
    write_manifest_json(path, {"project_name": "Demo", "tags": ["ü"]})
    assert json.loads(path.read_text(encoding="utf-8")) == {"project_name": "Demo", "tags": ["ü"]}


def test_render_product_docs_sections() -> None:
    md = render_product_docs({
        "project_name": "Demo",
        "description": "Does things.",
        "product_overview": {"tagline": "Ship faster", "target_audience": "Teams"},
        "features": [
            {"name": "Invites", "description": "Invite teammates.", "category": "Collaboration"},
            {"description": "nameless feature is skipped"},
        ],
        "tech_stack": {"language": "TypeScript", "framework": "Next.js"},
    })
    assert md.startswith("# Demo\n")
    assert "**Tagline:** Ship faster" in md
    assert "Value Proposition" not in md
    assert "### Invites\nInvite teammates.\n\n*Category: Collaboration*" in md
    assert "nameless" not in md
    assert "- **Language:** TypeScript\n- **Framework:** Next.js" in md


def test_render_product_docs_handles_raw_text(tmp_path: Path) -> None:
    path = tmp_path / "product-docs.md"
    write_product_docs(path, "model returned prose")
    assert path.read_text(encoding="utf-8").startswith("# Project")
