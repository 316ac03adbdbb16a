from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Any, Iterable, Mapping

from pydantic_core import to_jsonable_python

EMPTY_DOCUMENT = "[]"


def column_value(value: Any) -> Any:
    """Decimals become JSON numbers; NaN and infinity have no JSON form and read as NULL."""
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


class RowSerializer:
    """Serialize query rows to a JSON array of objects (one per row, column order kept).

    NULL columns are left out unless include_null_values is set, as FOR JSON AUTO does.
    """

    def __init__(self, include_null_values: bool = False):
        self.include_null_values = include_null_values

    def to_document(self, rows: Iterable[Mapping[str, Any]] | None) -> str:
        if not rows:
            return EMPTY_DOCUMENT
        items = []
        for row in rows:
            item = {}
            for key, value in row.items():
                value = column_value(value)
                if value is not None or self.include_null_values:
                    item[str(key)] = value
            items.append(item)
        if not items:
            return EMPTY_DOCUMENT
        return json.dumps(to_jsonable_python(items, bytes_mode="base64"), ensure_ascii=False, allow_nan=False)
