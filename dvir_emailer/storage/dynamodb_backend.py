"""
DynamoDB storage backend
One table per collection, partition key "id"
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ..errors import QueryFailed, WriteFailed
from .base import DocumentStore, resolve_server_timestamps

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _build_update(updates: Dict) -> Dict:
    """UpdateExpression pieces for a SET of every field"""
    return {
        "UpdateExpression": "SET " + ", ".join([f"#{k} = :{k}" for k in updates.keys()]),
        "ExpressionAttributeNames": {f"#{k}": k for k in updates.keys()},
        "ExpressionAttributeValues": {f":{k}": v for k, v in updates.items()},
    }


class DynamoDBBackend(DocumentStore):
    """DynamoDB storage backend"""

    def __init__(self, region_name: str = None, table_prefix: str = None, tenant_index: str = None):
        """Settings default to Config values"""
        from ..config import Config

        self.region_name = region_name or Config.AWS_REGION
        self.table_prefix = Config.DYNAMODB_TABLE_PREFIX if table_prefix is None else table_prefix
        self.tenant_index = Config.DYNAMODB_TENANT_INDEX if tenant_index is None else tenant_index
        self.timeout = Config.STORE_TIMEOUT_SECONDS
        self.max_batch_size = Config.MAX_BATCH_SIZE
        self._dynamodb = None
        self._tables = {}  # per-table cache

    def _get_dynamodb(self):
        """Lazy loading: boto3 DynamoDB resource"""
        if self._dynamodb is None:
            self._dynamodb = boto3.resource(
                "dynamodb",
                region_name=self.region_name,
                config=BotoConfig(
                    connect_timeout=self.timeout,
                    read_timeout=self.timeout,
                    retries={"max_attempts": 2},
                ),
            )
        return self._dynamodb

    def table_name(self, collection: str) -> str:
        return f"{self.table_prefix}{collection}"

    def _get_table(self, collection: str):
        """Lazy loading: table resource"""
        name = self.table_name(collection)
        if name not in self._tables:
            self._tables[name] = self._get_dynamodb().Table(name)
        return self._tables[name]

    def query(self, collection: str, filters: Dict[str, Any]) -> List[Dict]:
        """
        Equality query.
        database_name filters go through the tenant GSI when one is configured,
        everything else is a strongly consistent scan.
        """
        table = self._get_table(collection)
        remaining = dict(filters)
        kwargs = {}

        tenant = remaining.pop("database_name", None) if self.tenant_index else None

        filter_expression = None
        for field, value in remaining.items():
            condition = Attr(field).eq(value)
            filter_expression = condition if filter_expression is None else filter_expression & condition
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression

        if tenant is not None:
            kwargs["IndexName"] = self.tenant_index
            kwargs["KeyConditionExpression"] = Key("database_name").eq(tenant)
            operation = table.query
        else:
            kwargs["ConsistentRead"] = True
            operation = table.scan

        try:
            response = operation(**kwargs)
            items = response.get("Items", [])

            # pagination
            while "LastEvaluatedKey" in response:
                response = operation(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
                items.extend(response.get("Items", []))

        except ClientError as e:
            logger.error(f"DynamoDB query failed: {collection} {filters}: {e}")
            raise QueryFailed(f"Query on {collection} failed: {e}") from e

        logger.debug(f"DynamoDB query: {collection} {filters} ({len(items)} items)")
        return items

    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        try:
            response = self._get_table(collection).get_item(Key={"id": doc_id}, ConsistentRead=True)
        except ClientError as e:
            logger.error(f"DynamoDB get_item failed: {collection}/{doc_id}: {e}")
            raise QueryFailed(f"Get {collection}/{doc_id} failed: {e}") from e

        return response.get("Item")

    def add(self, collection: str, data: Dict) -> str:
        doc_id = uuid.uuid4().hex
        if not self.create(collection, doc_id, data):
            raise WriteFailed(f"Generated id collision in {collection}: {doc_id}")
        return doc_id

    def create(self, collection: str, doc_id: str, data: Dict) -> bool:
        """Conditional put (ConditionExpression: attribute_not_exists)"""
        item = resolve_server_timestamps(dict(data))
        item["id"] = doc_id

        try:
            self._get_table(collection).put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(id)",
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                logger.warning(f"Document already exists: {collection}/{doc_id}")
                return False
            logger.error(f"DynamoDB put_item failed: {collection}/{doc_id}: {e}")
            raise WriteFailed(f"Insert into {collection} failed: {e}") from e

        logger.info(f"DynamoDB item stored: {collection}/{doc_id}")
        return True

    def update(self, collection: str, doc_id: str, updates: Dict) -> None:
        if not updates:
            return

        try:
            self._get_table(collection).update_item(
                Key={"id": doc_id},
                ConditionExpression="attribute_exists(id)",
                **_build_update(resolve_server_timestamps(updates)),
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise WriteFailed(f"Document not found: {collection}/{doc_id}") from e
            logger.error(f"DynamoDB update_item failed: {collection}/{doc_id}: {e}")
            raise WriteFailed(f"Update {collection}/{doc_id} failed: {e}") from e

        logger.info(f"DynamoDB item updated: {collection}/{doc_id}")

    def batch_update(self, collection: str, updates_by_id: Dict[str, Dict]) -> None:
        """All-or-nothing update through TransactWriteItems"""
        if not updates_by_id:
            return

        if len(updates_by_id) > self.max_batch_size:
            raise WriteFailed(
                f"Batch of {len(updates_by_id)} exceeds the {self.max_batch_size} item transaction limit"
            )

        serializer = TypeSerializer()
        table_name = self.table_name(collection)
        transact_items = []
        for doc_id, updates in updates_by_id.items():
            update = _build_update(resolve_server_timestamps(updates))
            transact_items.append({
                "Update": {
                    "TableName": table_name,
                    "Key": {"id": serializer.serialize(doc_id)},
                    "ConditionExpression": "attribute_exists(id)",
                    "UpdateExpression": update["UpdateExpression"],
                    "ExpressionAttributeNames": update["ExpressionAttributeNames"],
                    "ExpressionAttributeValues": {
                        k: serializer.serialize(v)
                        for k, v in update["ExpressionAttributeValues"].items()
                    },
                }
            })

        try:
            self._get_dynamodb().meta.client.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            logger.error(f"DynamoDB transaction failed: {collection}: {e}")
            raise WriteFailed(f"Batch update on {collection} failed: {e}") from e

        logger.info(f"DynamoDB transaction committed: {collection} ({len(transact_items)})")

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self._get_table(collection).delete_item(Key={"id": doc_id})
        except ClientError as e:
            logger.error(f"DynamoDB delete_item failed: {collection}/{doc_id}: {e}")
            raise WriteFailed(f"Delete {collection}/{doc_id} failed: {e}") from e

        logger.info(f"DynamoDB item deleted: {collection}/{doc_id}")

    def ping(self) -> bool:
        try:
            self._get_dynamodb().meta.client.list_tables(Limit=1)
        except ClientError as e:
            logger.error(f"DynamoDB ping failed: {e}")
            raise QueryFailed(f"DynamoDB unreachable: {e}") from e
        return True
