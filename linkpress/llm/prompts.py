"""Prompt loading and rendering helpers for LLM classifiers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..config import ProviderConfig


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_classification_prompt(
    message_text: str,
    url: str,
    title: str,
    description: str,
    cfg: ProviderConfig,
) -> str:
    return _render_template(
        "classify",
        url=url,
        title=title or "(unknown)",
        description=description or "(none)",
        message_text=(message_text or "")[: cfg.max_chars] or "(empty)",
    )
