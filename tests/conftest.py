from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from growthlens.codebase import CodebaseExplorer
from growthlens.errors import CodebaseAccessError, ProviderError
from growthlens.llm import LLMClient


class FakeLLM(LLMClient):
    """Returns queued responses in order and records every prompt."""

    def __init__(self, responses: Optional[Iterable[str]] = None, model: str = "fake-model") -> None:
        self.model = model
        self.responses: List[str] = list(responses or [])
        self.prompts: List[str] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise ProviderError("no response queued")
        return self.responses.pop(0)

    def estimate_tokens(self, text: str) -> int:
        return len(text) // 4


class StubExplorer(CodebaseExplorer):
    """In-memory explorer: patterns map to fixed match lists, paths to contents."""

    def __init__(
        self,
        matches: Optional[Dict[str, List[str]]] = None,
        files: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(Path("."))
        self.matches = matches or {}
        self.files = files or {}
        self.searched: List[str] = []

    def search_files(self, pattern: str) -> List[str]:
        self.searched.append(pattern)
        return list(self.matches.get(pattern, []))

    def read_file(self, file_path: str) -> str:
        if file_path not in self.files:
            raise CodebaseAccessError(f"File does not exist: {file_path}")
        return self.files[file_path]


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "src" / "app").mkdir(parents=True)
    (tmp_path / "node_modules" / "lib").mkdir(parents=True)
    (tmp_path / "README.md").write_text("# Demo\nA demo project.\n", encoding="utf-8")
    (tmp_path / "main.py").write_text("print('hi')\n", encoding="utf-8")
    (tmp_path / "src" / "app" / "billing.py").write_text("PLANS = ['free', 'pro']\n", encoding="utf-8")
    (tmp_path / "src" / "app" / "users.ts").write_text("export const users = []\n", encoding="utf-8")
    (tmp_path / "node_modules" / "lib" / "index.js").write_text("module.exports = {}\n", encoding="utf-8")
    return tmp_path
