"""DynamoDB document store for CMS collections."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from wordpress.normalize import now_iso

logger = logging.getLogger(__name__)


class DuplicateKeyError(Exception):
    """Raised when a write would give two documents the same unique value."""

    def __init__(self, collection: str, field: str, value: Any):
        super().__init__(
            f"Duplicate value for {collection}.{field}: {value}"
        )
        self.collection = collection
        self.field = field
        self.value = value


class DocumentNotFoundError(Exception):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: Any):
        super().__init__(f"Document not found: {collection} {doc_id}")
        self.collection = collection
        self.doc_id = doc_id


def _to_dynamo(value: Any) -> Any:
    """Convert floats to Decimal, recursively (boto3 rejects floats)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _to_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(item) for item in value]
    return value


def _from_dynamo(value: Any) -> Any:
    """Convert Decimals read back from DynamoDB to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: _from_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(item) for item in value]
    return value


def _get_path(data: Dict[str, Any], path: str) -> Any:
    value: Any = data
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def create_table(table_name: str, dynamodb=None):
    """Create the single-table layout used by DynamoDBManager."""
    dynamodb = dynamodb or boto3.resource('dynamodb')
    table = dynamodb.create_table(
        TableName=table_name,
        KeySchema=[{'AttributeName': 'pk', 'KeyType': 'HASH'}],
        AttributeDefinitions=[{'AttributeName': 'pk', 'AttributeType': 'S'}],
        BillingMode='PAY_PER_REQUEST',
    )
    table.wait_until_exists()
    logger.info(f"Created DynamoDB table: {table_name}")
    return table


class DynamoDBManager:
    """
    Document store for CMS collections backed by a single DynamoDB table.

    Item layout (partition key `pk`):
      - documents:     "{collection}#{id}" holding `id` and a `data` map
      - unique marker: "{collection}#unique#{field}#{value}" -> `target_id`
      - id counter:    "{collection}#counter"

    Unique markers are written in the same transaction as the document they
    point at, so at most one document per collection holds a given value of
    a unique field.
    """

    UNIQUE_FIELDS = {
        'venues': ('sync.externalId',),
        'categories': ('sync.externalId',),
        'organizers': ('sync.externalId',),
        'events': ('sync.externalId',),
        'media': ('credit',),
    }

    def __init__(self, table_name: str, dynamodb=None):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
            dynamodb: Optional boto3 DynamoDB resource
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self.client = self.dynamodb.meta.client
        self._serializer = TypeSerializer()
        logger.info(f"Initialized DynamoDBManager for table: {table_name}")

    def find(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        depth: int = 0
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Find documents matching equality filters.

        Filters on a single unique field are answered from its marker item;
        anything else falls back to a paginated scan. Relationships are
        stored as ids and returned as ids whatever the depth.

        Args:
            collection: Collection name
            where: Mapping of dotted field path to expected value
            limit: Maximum number of documents to return
            depth: Relationship population depth (ids only)

        Returns:
            Dict with a `docs` list
        """
        where = where or {}

        if list(where) == ['id']:
            doc = self.get(collection, where['id'])
            return {'docs': [doc] if doc else []}

        if len(where) == 1:
            path, value = next(iter(where.items()))
            if path in self.UNIQUE_FIELDS.get(collection, ()):
                doc = self._find_by_unique(collection, path, value)
                return {'docs': [doc] if doc else []}

        return {'docs': self._scan(collection, where, limit)}

    def get(self, collection: str, doc_id: Any) -> Optional[Dict[str, Any]]:
        response = self.table.get_item(Key={'pk': self._doc_key(collection, doc_id)})
        item = response.get('Item')
        return self._item_to_doc(item) if item else None

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a document with a freshly allocated integer id.

        Args:
            collection: Collection name
            data: Document fields

        Returns:
            The created document including its `id`

        Raises:
            DuplicateKeyError: If a unique field value is already taken
        """
        doc_id = self._next_id(collection)
        timestamp = now_iso()
        data = {**data, 'createdAt': timestamp, 'updatedAt': timestamp}

        item = {
            'pk': self._doc_key(collection, doc_id),
            'kind': 'doc',
            'collection': collection,
            'id': doc_id,
            'data': data,
        }
        transact_items = [self._put(item)]
        markers = {}
        for field_name, value in self._unique_values(collection, data).items():
            markers[len(transact_items)] = (field_name, value)
            transact_items.append(
                self._put(self._marker_item(collection, field_name, value, doc_id))
            )

        self._transact(collection, transact_items, markers)
        logger.debug(f"Created {collection} document {doc_id}")
        return {'id': doc_id, **data}

    def update(
        self,
        collection: str,
        doc_id: Any,
        data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Merge top-level fields into an existing document.

        Unique markers follow the new values in the same transaction.

        Args:
            collection: Collection name
            doc_id: Internal document id
            data: Top-level fields to overwrite

        Returns:
            The updated document

        Raises:
            DocumentNotFoundError: If no document has this id
            DuplicateKeyError: If a new unique value is already taken
        """
        current = self.get(collection, doc_id)
        if current is None:
            raise DocumentNotFoundError(collection, doc_id)
        doc_id = current.pop('id')

        data = {**data, 'updatedAt': now_iso()}
        merged = {**current, **data}

        names = {'#data': 'data'}
        values = {}
        assignments = []
        for index, (key, value) in enumerate(data.items()):
            names[f'#f{index}'] = key
            values[f':v{index}'] = self._serialize(value)
            assignments.append(f'#data.#f{index} = :v{index}')

        transact_items = [{
            'Update': {
                'TableName': self.table_name,
                'Key': {'pk': {'S': self._doc_key(collection, doc_id)}},
                'UpdateExpression': 'SET ' + ', '.join(assignments),
                'ConditionExpression': 'attribute_exists(pk)',
                'ExpressionAttributeNames': names,
                'ExpressionAttributeValues': values,
            }
        }]
        markers = {}

        old_unique = self._unique_values(collection, current)
        new_unique = self._unique_values(collection, merged)
        for field_name in self.UNIQUE_FIELDS.get(collection, ()):
            old_value = old_unique.get(field_name)
            new_value = new_unique.get(field_name)
            if old_value == new_value:
                continue
            if new_value is not None:
                markers[len(transact_items)] = (field_name, new_value)
                transact_items.append(
                    self._put(self._marker_item(collection, field_name, new_value, doc_id))
                )
            if old_value is not None:
                transact_items.append({
                    'Delete': {
                        'TableName': self.table_name,
                        'Key': {'pk': {'S': self._marker_key(collection, field_name, old_value)}},
                    }
                })

        self._transact(collection, transact_items, markers)
        logger.debug(f"Updated {collection} document {doc_id}")
        return {'id': doc_id, **merged}

    def _find_by_unique(
        self,
        collection: str,
        field_name: str,
        value: Any
    ) -> Optional[Dict[str, Any]]:
        if value is None:
            return None
        response = self.table.get_item(
            Key={'pk': self._marker_key(collection, field_name, value)}
        )
        marker = response.get('Item')
        if not marker:
            return None
        return self.get(collection, marker['target_id'])

    def _scan(
        self,
        collection: str,
        where: Dict[str, Any],
        limit: Optional[int]
    ) -> List[Dict[str, Any]]:
        condition = Attr('kind').eq('doc') & Attr('collection').eq(collection)
        for path, value in where.items():
            attribute = 'id' if path == 'id' else f'data.{path}'
            condition = condition & Attr(attribute).eq(_to_dynamo(value))

        docs = []
        scan_kwargs = {'FilterExpression': condition}
        while True:
            response = self.table.scan(**scan_kwargs)
            docs.extend(self._item_to_doc(item) for item in response.get('Items', []))
            if limit and len(docs) >= limit:
                break
            if 'LastEvaluatedKey' not in response:
                break
            scan_kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

        docs.sort(key=lambda doc: doc['id'])
        return docs[:limit] if limit else docs

    def _next_id(self, collection: str) -> int:
        response = self.table.update_item(
            Key={'pk': f'{collection}#counter'},
            UpdateExpression='SET #kind = :kind, #collection = :collection ADD #value :one',
            ExpressionAttributeNames={
                '#kind': 'kind',
                '#collection': 'collection',
                '#value': 'value',
            },
            ExpressionAttributeValues={
                ':kind': 'counter',
                ':collection': collection,
                ':one': 1,
            },
            ReturnValues='UPDATED_NEW',
        )
        return int(response['Attributes']['value'])

    def _transact(
        self,
        collection: str,
        transact_items: List[Dict[str, Any]],
        markers: Dict[int, tuple]
    ) -> None:
        """
        Run a write transaction, translating marker conflicts.

        Args:
            collection: Collection name
            transact_items: TransactWriteItems entries
            markers: Position in transact_items -> (field, value) of each
                unique marker put
        """
        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            if e.response['Error']['Code'] != 'TransactionCanceledException':
                raise

            reasons = e.response.get('CancellationReasons') or []
            for position, (field_name, value) in markers.items():
                if (
                    position < len(reasons)
                    and reasons[position].get('Code') == 'ConditionalCheckFailed'
                ):
                    raise DuplicateKeyError(collection, field_name, value) from e

            if markers and not reasons:
                field_name, value = next(iter(markers.values()))
                raise DuplicateKeyError(collection, field_name, value) from e
            raise

    def _put(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'Put': {
                'TableName': self.table_name,
                'Item': {key: self._serialize(value) for key, value in item.items()},
                'ConditionExpression': 'attribute_not_exists(pk)',
            }
        }

    def _serialize(self, value: Any) -> Dict[str, Any]:
        return self._serializer.serialize(_to_dynamo(value))

    def _marker_item(
        self,
        collection: str,
        field_name: str,
        value: Any,
        doc_id: int
    ) -> Dict[str, Any]:
        return {
            'pk': self._marker_key(collection, field_name, value),
            'kind': 'unique',
            'collection': collection,
            'field': field_name,
            'value': str(value),
            'target_id': doc_id,
        }

    def _unique_values(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for field_name in self.UNIQUE_FIELDS.get(collection, ()):
            value = _get_path(data, field_name)
            if value is not None and value != '':
                values[field_name] = value
        return values

    def _item_to_doc(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {'id': _from_dynamo(item['id']), **_from_dynamo(item.get('data', {}))}

    @staticmethod
    def _doc_key(collection: str, doc_id: Any) -> str:
        return f'{collection}#{doc_id}'

    @staticmethod
    def _marker_key(collection: str, field_name: str, value: Any) -> str:
        return f'{collection}#unique#{field_name}#{value}'
