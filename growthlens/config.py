"""
Configuration management for growthlens.

Settings come from three places, later ones winning:

1. ``growthlens_config.json`` in the analysed project's root, if present.
2. Environment variables (``GROWTHLENS_PROVIDER``, ``GROWTHLENS_MODEL``,
   ``GROWTHLENS_BASE_URL``, ``GROWTHLENS_API_KEY`` or the provider's own
   key variable such as ``OPENAI_API_KEY``).
3. Explicit overrides, normally taken from the command line.

A config file that cannot be parsed is reported and ignored.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .llm import LOCAL_PROVIDERS

logger = logging.getLogger(__name__)

CONFIG_FILE = "growthlens_config.json"
DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_OUTPUT_DIR = "skene-context"

PROVIDER_KEY_ENV: Dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


@dataclass
class ExcludeConfig:
    """Folders left out of every search, listing and tree.

    Attributes
    ----------
    exclude_folders: List[str]
        Folder names (``"fixtures"``) or relative paths (``"web/legacy"``)
        added to the built-in exclusions such as ``node_modules`` and
        ``.git``.
    """

    exclude_folders: List[str] = field(default_factory=list)


@dataclass
class EngineConfig:
    """Top-level configuration for one growthlens invocation.

    Attributes
    ----------
    provider: str
        Text-generation provider name, e.g. ``openai`` or ``anthropic``.

    model: str
        Model identifier passed to the provider.

    api_key: str | None
        Credential for the provider.  Local providers run without one.

    base_url: str | None
        Endpoint override for self-hosted or proxy deployments.

    output_dir: Path
        Where manifests and reports are written.

    config_path: Path | None
        The config file this object was loaded from, for logging.
    """

    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    product_docs: bool = False
    exclude: ExcludeConfig = field(default_factory=ExcludeConfig)
    config_path: Optional[Path] = None

    @property
    def requires_api_key(self) -> bool:
        return self.provider.lower() not in LOCAL_PROVIDERS

    @staticmethod
    def _read_file(config_path: Path) -> Dict[str, Any]:
        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to parse %s: %s", config_path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object", config_path)
            return {}
        return data

    @staticmethod
    def load(base_dir: Path, overrides: Optional[Dict[str, Any]] = None) -> "EngineConfig":
        """Load configuration for the project rooted at ``base_dir``."""
        config_path = base_dir / CONFIG_FILE
        data = EngineConfig._read_file(config_path) if config_path.exists() else {}

        env = os.environ
        provider = env.get("GROWTHLENS_PROVIDER") or data.get("provider") or DEFAULT_PROVIDER
        model = env.get("GROWTHLENS_MODEL") or data.get("model") or DEFAULT_MODEL
        base_url = env.get("GROWTHLENS_BASE_URL") or data.get("base_url")
        output_dir = data.get("output_dir") or DEFAULT_OUTPUT_DIR
        product_docs = bool(data.get("product_docs", False))
        exclude_folders = list(data.get("exclude_folders") or [])

        for key, value in (overrides or {}).items():
            if value is None:
                continue
            if key == "provider":
                provider = value
            elif key == "model":
                model = value
            elif key == "base_url":
                base_url = value
            elif key == "output_dir":
                output_dir = value
            elif key == "product_docs":
                product_docs = bool(value) or product_docs
            elif key == "exclude_folders":
                exclude_folders.extend(value)

        api_key = (overrides or {}).get("api_key") or env.get("GROWTHLENS_API_KEY")
        if not api_key:
            key_env = PROVIDER_KEY_ENV.get(str(provider).lower())
            api_key = env.get(key_env) if key_env else None

        output_path = Path(output_dir)
        if not output_path.is_absolute():
            output_path = base_dir / output_path

        return EngineConfig(
            provider=str(provider),
            model=str(model),
            api_key=api_key,
            base_url=base_url,
            output_dir=output_path,
            product_docs=product_docs,
            exclude=ExcludeConfig(exclude_folders=[str(f) for f in exclude_folders]),
            config_path=config_path if config_path.exists() else None,
        )
