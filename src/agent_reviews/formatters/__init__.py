from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .json_fmt import format_json
from .text_fmt import format_output
from ..models import ReviewComment


def get_formatter(fmt: str, **kwargs: Any) -> Callable[[list[ReviewComment]], str]:
    if fmt == "json":
        return format_json
    if fmt == "text":
        state = kwargs.get("state", "all")
        expanded = kwargs.get("expanded", False)
        return lambda comments: format_output(comments, state=state, expanded=expanded)
    raise ValueError(f"Unknown format: {fmt!r}")
