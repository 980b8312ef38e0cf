"""
Cursor pagination payloads.

List endpoints return ``{<key>: [...], "links": {"next": ..., "prev": ...}}``
where the links are opaque cursors to pass back as the ``cursor`` query
parameter.
"""

from typing import Any, Type

from pydantic import BaseModel

from kublade.core.database.repositories import CursorPage


def page_payload(key: str, page: CursorPage, schema: Type[BaseModel]) -> dict[str, Any]:
    return {
        key: [schema.model_validate(item).model_dump(mode="json") for item in page.items],
        "links": {
            "next": page.next_cursor,
            "prev": page.prev_cursor,
        },
    }
