from __future__ import annotations

import dataclasses
import json
from typing import Any

from ..models import ReviewComment


def format_json(comments: list[ReviewComment]) -> str:
    return json.dumps([dataclasses.asdict(c) for c in comments], indent=2)


def format_json_item(item: Any) -> str:
    return json.dumps(dataclasses.asdict(item), indent=2)
