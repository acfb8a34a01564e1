from types import SimpleNamespace

import pytest
import requests

from growthlens import llm as llm_mod
from growthlens.context import AnalysisContext
from growthlens.errors import MissingContextKeyError, ProviderError
from growthlens.llm import OpenAICompatClient
from growthlens.pipeline import MeteredLLM, MultiStepStrategy
from growthlens.steps import AnalysisStep, AnalyzeStep, ReadFilesStep, SelectFilesStep

from conftest import FakeLLM, StubExplorer


def _strategy(max_files: int = 5) -> MultiStepStrategy:
    return MultiStepStrategy([
        SelectFilesStep("Pick.", ("p1", "p2", "p3"), max_files, "demo_files"),
        ReadFilesStep("demo_files", "demo_contents"),
        AnalyzeStep("Analyse.", "demo", "demo_contents"),
    ])


def _explorer() -> StubExplorer:
    return StubExplorer(
        matches={"p1": ["b.py"], "p2": ["a.py"], "p3": ["a.py"]},
        files={"a.py": "A", "b.py": "B"},
    )


def test_run_executes_steps_in_order_and_reports_progress() -> None:
    events = []
    llm = FakeLLM(['{"result": 1}'])

    context = _strategy().run(_explorer(), llm, "Demo", lambda *e: events.append(e))

    assert context.get("demo_files") == ["a.py", "b.py"]
    assert [r["path"] for r in context.get("demo_contents")] == ["a.py", "b.py"]
    assert context.get("demo") == {"result": 1}
    assert len(llm.prompts) == 1
    assert events == [
        ("Executing Select Files", 0.0, 1, 3),
        ("Executing Read Files", pytest.approx(100 / 3), 2, 3),
        ("Executing Analyze", pytest.approx(200 / 3), 3, 3),
        ("Complete", 100.0, 3, 3),
    ]


def test_run_fills_metadata() -> None:
    context = _strategy().run(_explorer(), FakeLLM(["[]"], model="m-1"), "Demo")
    assert context.request == "Demo"
    assert context.metadata.model_name == "m-1"
    assert context.metadata.provider_name == "fake"
    assert context.metadata.total_steps == 3
    assert context.metadata.files_read == ["a.py", "b.py"]


def test_seeded_context_keeps_existing_keys() -> None:
    seed = AnalysisContext("Seed")
    seed.set("tech_stack", {"language": "Go"})
    seed.set("demo", "old")

    context = _strategy().run_with_context(_explorer(), FakeLLM(['{"new": 1}']), "ignored", seed)

    assert context is seed
    assert context.request == "Seed"
    assert context.get("tech_stack") == {"language": "Go"}
    assert context.get("demo") == {"new": 1}


def test_failure_aborts_and_keeps_partial_context() -> None:
    seed = AnalysisContext("Seed")
    with pytest.raises(ProviderError):
        _strategy().run_with_context(_explorer(), FakeLLM([]), "Demo", seed)
    assert seed.get("demo_files") == ["a.py", "b.py"]
    assert "demo_contents" in seed
    assert "demo" not in seed


def test_missing_mandatory_key_fails_run() -> None:
    strategy = MultiStepStrategy([ReadFilesStep("never_written", "out")])
    events = []
    with pytest.raises(MissingContextKeyError):
        strategy.run(StubExplorer(), FakeLLM(), "Demo", lambda *e: events.append(e))
    assert events == [("Executing Read Files", 0.0, 1, 1)]


def test_rerun_with_same_inputs_is_deterministic() -> None:
    first = _strategy(max_files=1).run(_explorer(), FakeLLM(["nonsense", '{"x": [1, 2]}']), "Demo")
    second = _strategy(max_files=1).run(_explorer(), FakeLLM(["nonsense", '{"x": [1, 2]}']), "Demo")
    assert first.get("demo_files") == ["a.py"]
    assert first.to_dict() == second.to_dict()


def test_empty_strategy_only_reports_completion() -> None:
    events = []
    context = MultiStepStrategy([]).run(StubExplorer(), FakeLLM(), "Nothing", lambda *e: events.append(e))
    assert events == [("Complete", 100.0, 0, 0)]
    assert context.keys() == []


class _WordEncoding:
    def encode(self, text, disallowed_special=()):
        return text.split()


def _sdk_client(answer: str) -> OpenAICompatClient:
    client = OpenAICompatClient("ollama", "llama3", "")
    message = SimpleNamespace(message=SimpleNamespace(content=answer))
    create = lambda **kwargs: SimpleNamespace(choices=[message])
    client.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client


def test_tokens_are_metered_through_client_estimates(monkeypatch) -> None:
    monkeypatch.setattr(llm_mod.tiktoken, "encoding_for_model", lambda name: _WordEncoding())
    seed = AnalysisContext("Seed")
    seed.metadata.tokens_used = 10

    context = MultiStepStrategy([AnalyzeStep("Analyse.", "out")]).run_with_context(
        StubExplorer(), _sdk_client('{"ok": 1}'), "Demo", seed
    )

    assert context.get("out") == {"ok": 1}
    # 1 prompt word + 2 response words on top of the seeded count
    assert context.metadata.tokens_used == 13


def test_unavailable_token_encoding_does_not_abort_run(monkeypatch) -> None:
    def unknown(name):
        raise KeyError(name)

    def offline(name):
        raise requests.ConnectionError("cannot fetch cl100k_base (offline)")

    monkeypatch.setattr(llm_mod.tiktoken, "encoding_for_model", unknown)
    monkeypatch.setattr(llm_mod.tiktoken, "get_encoding", offline)

    context = MultiStepStrategy([AnalyzeStep("Analyse.", "out")]).run(StubExplorer(), _sdk_client('{"ok": 1}'), "Demo")

    assert context.get("out") == {"ok": 1}
    assert context.metadata.tokens_used == len("Analyse.") // 4 + len('{"ok": 1}') // 4


def test_steps_receive_metered_client() -> None:
    seen = []

    class RecordingStep(AnalysisStep):
        name = "Record"

        def execute(self, codebase, llm, context) -> None:
            seen.append(llm)

    fake = FakeLLM(model="m-2")
    MultiStepStrategy([RecordingStep()]).run(StubExplorer(), fake, "Demo")

    assert isinstance(seen[0], MeteredLLM)
    assert seen[0].inner is fake
    assert seen[0].model_name == "m-2"
