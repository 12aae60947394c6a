"""Protocol implemented by the document stores (SQLite and DynamoDB)."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class RecordStore(Protocol):
    """Documents keyed by a partition key (``pk``) and a sort key (``sk``)."""

    def put_item(self, item: Dict[str, Any]) -> None:
        ...

    def replace_item(self, item: Dict[str, Any]) -> None:
        """Overwrite an existing document; raise ``LookupError`` if it is gone."""
        ...

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        ...

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        ...

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        ...


__all__ = ["RecordStore"]
