import pytest

from growthlens.context import AnalysisContext
from growthlens.errors import MissingContextKeyError


def test_get_missing_key_returns_none() -> None:
    context = AnalysisContext("req")
    assert context.get("absent") is None
    assert context.get("absent", []) == []
    assert "absent" not in context


def test_set_overwrites() -> None:
    context = AnalysisContext("req")
    context.set("k", 1)
    context.set("k", {"v": 2})
    assert context.get("k") == {"v": 2}
    assert context.keys() == ["k"]


def test_require_raises_for_missing_key() -> None:
    context = AnalysisContext("req")
    with pytest.raises(MissingContextKeyError) as info:
        context.require("files")
    assert info.value.key == "files"
    assert "Key not found: files" in str(info.value)


def test_to_dict_is_a_detached_snapshot() -> None:
    context = AnalysisContext.seeded("req", {"items": [1]})
    context.metadata.files_read.append("a.py")
    snapshot = context.to_dict()
    context.get("items").append(2)
    assert snapshot["data"] == {"items": [1]}
    assert snapshot["metadata"]["files_read"] == ["a.py"]
    assert snapshot["request"] == "req"
