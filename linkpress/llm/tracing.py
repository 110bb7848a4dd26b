"""
Optional Langfuse tracing for sync runs.

Three span shapes cover the pipeline: one per run, one per channel and
one per classification call. With tracing disabled, or langfuse not
installed, every span helper yields None and costs nothing.
"""

from __future__ import annotations

from contextlib import contextmanager
import json
import os
from typing import Any, Iterator

from ..config import TracingConfig
from ..utils.logging import clip, scrub

_CLIENT = None
_CFG = TracingConfig()


def setup_langfuse(cfg: TracingConfig) -> None:
    """Create the Langfuse client when tracing is enabled and keys are present."""
    global _CLIENT, _CFG  # noqa: PLW0603
    _CFG = cfg
    _CLIENT = None
    if not cfg.enabled:
        return
    public_key = cfg.public_key or os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = cfg.secret_key or os.getenv("LANGFUSE_SECRET_KEY")
    if not (public_key and secret_key):
        return
    try:
        from langfuse import Langfuse  # type: ignore
    except ImportError:
        return
    _CLIENT = Langfuse(
        public_key=public_key,
        secret_key=secret_key,
        host=cfg.host or os.getenv("LANGFUSE_HOST"),
    )


def tracing_enabled() -> bool:
    return _CLIENT is not None


def run_span(workspaces: int, channels: int):
    return _span("linkpress.sync", {"workspaces": workspaces, "channels": channels})


def channel_span(workspace: str, channel_id: str):
    return _span(
        "linkpress.channel",
        {"workspace": workspace, "channel": channel_id},
        {"slack.workspace": workspace, "slack.channel": channel_id},
    )


def classify_span(provider: str, model: str, url: str, prompt: str):
    return _span(
        f"{provider}.classify",
        prompt,
        {"llm.provider": provider, "llm.model": model, "link.url": scrub(url, _CFG.redaction)},
        generation=True,
    )


def set_span_output(span: Any | None, output: Any) -> None:
    if span is None:
        return
    _update(span, output=_payload(output))


def record_span_error(span: Any | None, exc: BaseException) -> None:
    if span is None:
        return
    _update(span, level="ERROR", status_message=f"{type(exc).__name__}: {exc}")


def flush() -> None:
    """Send buffered spans; Langfuse ingests in the background."""
    if _CLIENT is None:
        return
    try:
        _CLIENT.flush()
    except Exception:  # noqa: BLE001
        return


@contextmanager
def _span(
    name: str,
    input_value: Any,
    metadata: dict[str, str] | None = None,
    generation: bool = False,
) -> Iterator[Any | None]:
    client = _CLIENT
    if client is None:
        yield None
        return
    try:
        start = client.start_as_current_generation if generation else client.start_as_current_span
        cm = start(
            name=name,
            input=_payload(input_value),
            metadata=metadata or {},
        )
        span = cm.__enter__()
    except Exception:  # noqa: BLE001
        # Tracing failures never propagate
        yield None
        return
    try:
        yield span
    finally:
        try:
            cm.__exit__(None, None, None)
        except Exception:  # noqa: BLE001
            pass


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=True, default=str)
    return clip(scrub(text, _CFG.redaction), _CFG.max_payload_chars)


def _update(span: Any, **fields: Any) -> None:
    try:
        span.update(**fields)
    except Exception:  # noqa: BLE001
        return
