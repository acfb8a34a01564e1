import json
from pathlib import Path

import pytest

from growthlens import cli

from conftest import FakeLLM

MANIFEST = {"project_name": "Demo", "tech_stack": {"language": "Python"}}


@pytest.fixture(autouse=True)
def no_provider_env(monkeypatch) -> None:
    for name in ("GROWTHLENS_PROVIDER", "GROWTHLENS_MODEL", "GROWTHLENS_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def _install_llm(monkeypatch, responses) -> FakeLLM:
    fake = FakeLLM(responses)
    monkeypatch.setattr(cli, "create_llm_client", lambda *args, **kwargs: fake)
    return fake


def _lines(capsys) -> list:
    return [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]


def test_analyze_writes_manifest(project: Path, monkeypatch, capsys) -> None:
    _install_llm(monkeypatch, ["{}", "[]", "[]", "{}", '{"project_name": "Demo"}'])

    code = cli.main(["analyze", str(project), "--api-key", "k", "--dump-context"])

    assert code == 0
    out_dir = project / "skene-context"
    manifest = json.loads((out_dir / "growth-manifest.json").read_text(encoding="utf-8"))
    assert manifest["project_name"] == "Demo"
    assert manifest["version"] == "1.0"
    assert manifest["generated_at"]
    assert (out_dir / "analysis-context.json").exists()
    lines = _lines(capsys)
    assert lines[0]["type"] == "progress"
    assert lines[-1] == {
        "type": "result",
        "manifest_path": str(out_dir / "growth-manifest.json"),
        "template_path": None,
        "docs_path": None,
        "plan_path": None,
    }


def test_analyze_without_key_reports_error(project: Path, capsys) -> None:
    code = cli.main(["analyze", str(project)])
    assert code == 1
    lines = _lines(capsys)
    assert lines[-1]["type"] == "error"
    assert "No API key" in lines[-1]["message"]


def test_provider_failure_is_single_terminal_error(project: Path, monkeypatch, capsys) -> None:
    _install_llm(monkeypatch, [])
    assert cli.main(["analyze", str(project), "--api-key", "k"]) == 1
    errors = [line for line in _lines(capsys) if line["type"] == "error"]
    assert len(errors) == 1
    assert not (project / "skene-context" / "growth-manifest.json").exists()


def test_plan_reads_manifest_and_writes_memo(project: Path, monkeypatch, capsys) -> None:
    out_dir = project / "skene-context"
    out_dir.mkdir()
    (out_dir / "growth-manifest.json").write_text(json.dumps(MANIFEST), encoding="utf-8")
    fake = _install_llm(monkeypatch, ["# Plan"])

    assert cli.main(["plan", str(project), "--provider", "ollama"]) == 0

    assert (out_dir / "growth-plan.md").read_text(encoding="utf-8") == "# Plan"
    assert "**Project:** Demo" in fake.prompts[0]
    assert _lines(capsys)[-1]["plan_path"] == str(out_dir / "growth-plan.md")


def test_status_without_manifest_fails(project: Path, monkeypatch, capsys) -> None:
    _install_llm(monkeypatch, ["unused"])
    assert cli.main(["status", str(project), "--api-key", "k"]) == 1
    assert "Run analysis first" in _lines(capsys)[-1]["message"]


def test_missing_root_directory(tmp_path: Path, capsys) -> None:
    assert cli.main(["build", str(tmp_path / "nope")]) == 1
    assert _lines(capsys)[-1]["type"] == "error"


@pytest.mark.parametrize(
    "stored",
    ['"model returned prose"', '{"project_name": "Demo"}', '{"project_name": "Demo", "tech_stack": {}}'],
)
def test_plan_rejects_invalid_manifest(project: Path, monkeypatch, capsys, stored: str) -> None:
    out_dir = project / "skene-context"
    out_dir.mkdir()
    (out_dir / "growth-manifest.json").write_text(stored, encoding="utf-8")
    fake = _install_llm(monkeypatch, ["unused"])

    assert cli.main(["plan", str(project), "--provider", "ollama"]) == 1

    assert fake.prompts == []
    assert "Invalid manifest" in _lines(capsys)[-1]["message"]
    assert not (out_dir / "growth-plan.md").exists()


def test_relative_output_dir_is_resolved_from_cwd(project: Path, tmp_path_factory, monkeypatch, capsys) -> None:
    cwd = tmp_path_factory.mktemp("cwd")
    (cwd / "out").mkdir()
    (cwd / "out" / "growth-manifest.json").write_text(json.dumps(MANIFEST), encoding="utf-8")
    monkeypatch.chdir(cwd)
    _install_llm(monkeypatch, ["# Build"])

    assert cli.main(["build", str(project), "--provider", "ollama", "--output-dir", "out"]) == 0

    assert (cwd / "out" / "implementation-prompt.md").read_text(encoding="utf-8") == "# Build"
    assert not (project / "out").exists()
