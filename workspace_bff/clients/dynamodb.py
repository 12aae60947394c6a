"""
DynamoDB implementation of the document store used for credentials and tasks.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from workspace_bff.core.config import StorageSettings


class DynamoDBClient:
    """Same pk/sk document contract as ``SQLiteStore``, backed by one table."""

    def __init__(self, settings: StorageSettings, table: Any = None) -> None:
        if table is None:
            if not settings.dynamodb_table:
                raise ValueError("STORAGE_DYNAMODB_TABLE must be set for the dynamodb backend.")
            resource = boto3.resource("dynamodb", region_name=settings.aws_region)
            table = resource.Table(settings.dynamodb_table)
        self._table = table

    def put_item(self, item: Dict[str, Any]) -> None:
        if not item.get("pk") or not item.get("sk"):
            raise ValueError("Item must include 'pk' and 'sk' keys")
        self._table.put_item(Item=item)

    def replace_item(self, item: Dict[str, Any]) -> None:
        if not item.get("pk") or not item.get("sk"):
            raise ValueError("Item must include 'pk' and 'sk' keys")
        try:
            self._table.put_item(Item=item, ConditionExpression=Attr("pk").exists())
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                raise
            raise LookupError(f"No document stored at {item['pk']}/{item['sk']}.") from exc

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        response = self._table.get_item(Key={"pk": partition_key, "sk": sort_key})
        return response.get("Item")

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        self._table.delete_item(Key={"pk": partition_key, "sk": sort_key})

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        """Query one partition, following pagination until exhausted."""
        condition = Key("pk").eq(partition_key) & Key("sk").begins_with(sort_key_prefix)
        items: list[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {"KeyConditionExpression": condition}
        while True:
            response = self._table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key


__all__ = ["DynamoDBClient"]
