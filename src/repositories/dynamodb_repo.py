"""
DynamoDB store implementations.

Documents are stored as pydantic dumps. DynamoDB wants Decimal instead of
float, so values pass through `_to_item` / `_from_item` at the boundary.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from models.agent import Suggestion
from models.audit import AuditLogEntry
from models.config import TriageConfig
from models.knowledge import Article, ArticleStatus
from models.ticket import Reply, Ticket, TicketStatus, utcnow
from repositories.base import (
    ArticleStore,
    AuditStore,
    ConfigStore,
    SuggestionStore,
    TicketStore,
)
from utils.error_handling import (
    AuditWriteError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
)
from utils.logging_config import get_logger
from utils.text import rank_documents

logger = get_logger(__name__)

CONFIG_KEY = "singleton"
SUGGESTIONS_BY_TICKET_INDEX = "ticket_id-created_at-index"


def _to_item(model: BaseModel) -> Dict[str, Any]:
    return json.loads(model.model_dump_json(), parse_float=Decimal)


def _to_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return _to_item(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return json.loads(json.dumps(value, default=str), parse_float=Decimal)


def _from_item(value: Any) -> Any:
    """Turn boto3 Decimals back into ints/floats, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_item(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_item(v) for v in value]
    return value


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class _DynamoTable:
    """Shared table handle; a table object can be injected for tests."""

    def __init__(self, table_name: str, table: Any = None) -> None:
        self.table = table if table is not None else boto3.resource("dynamodb").Table(table_name)

    def _scan(self, **kwargs: Any) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        while True:
            resp = self.table.scan(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key


class DynamoTicketStore(_DynamoTable, TicketStore):
    def create(self, ticket: Ticket) -> Ticket:
        self.table.put_item(Item=_to_item(ticket))
        return ticket

    def get(self, ticket_id: str) -> Optional[Ticket]:
        item = self.table.get_item(Key={"id": ticket_id}).get("Item")
        return Ticket.model_validate(_from_item(item)) if item else None

    def update(
        self,
        ticket_id: str,
        patch: Dict[str, Any],
        expected_status: Optional[TicketStatus] = None,
        reply: Optional[Reply] = None,
    ) -> Ticket:
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments: List[str] = []
        for i, (field, value) in enumerate({**patch, "updated_at": utcnow()}.items()):
            names[f"#f{i}"] = field
            values[f":v{i}"] = _to_value(value)
            assignments.append(f"#f{i} = :v{i}")
        if reply is not None:
            names["#replies"] = "replies"
            values[":reply"] = [_to_item(reply)]
            values[":empty"] = []
            assignments.append("#replies = list_append(if_not_exists(#replies, :empty), :reply)")

        condition = "attribute_exists(id)"
        if expected_status is not None:
            names["#status"] = "status"
            values[":expected"] = expected_status.value
            condition += " AND #status = :expected"

        try:
            resp = self.table.update_item(
                Key={"id": ticket_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression=condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if not _is_conditional_failure(exc):
                raise
            if self.get(ticket_id) is None:
                raise NotFoundError(f"Ticket {ticket_id} not found") from exc
            raise ConflictError(
                f"Ticket {ticket_id} changed status before the update applied"
            ) from exc
        return Ticket.model_validate(_from_item(resp["Attributes"]))

    def append_reply(self, ticket_id: str, reply: Reply) -> Ticket:
        return self.update(ticket_id, {}, reply=reply)


class DynamoArticleStore(_DynamoTable, ArticleStore):
    """
    DynamoDB has no text index, so published articles are scanned and ranked
    in-process with the same BM25 ranking as the in-memory store.
    """

    def create(self, article: Article) -> Article:
        self.table.put_item(Item=_to_item(article))
        return article

    def _with_status(self, status: ArticleStatus, extra=None) -> List[Article]:
        condition = Attr("status").eq(status.value)
        if extra is not None:
            condition = condition & extra
        items = self._scan(FilterExpression=condition)
        return [Article.model_validate(_from_item(i)) for i in items]

    def search_full_text(
        self, query: str, status: ArticleStatus = ArticleStatus.PUBLISHED, limit: int = 3
    ) -> List[Article]:
        articles = self._with_status(status)
        order = rank_documents(query, [f"{a.title} {a.body}" for a in articles])
        return [articles[i] for i in order[:limit]]

    def find_by_tags(
        self,
        tags: Sequence[str],
        status: ArticleStatus = ArticleStatus.PUBLISHED,
        limit: int = 3,
    ) -> List[Article]:
        if not tags:
            return []
        tag_condition = Attr("tags").contains(tags[0])
        for tag in tags[1:]:
            tag_condition = tag_condition | Attr("tags").contains(tag)
        return self._with_status(status, tag_condition)[:limit]

    def find_recent(
        self, status: ArticleStatus = ArticleStatus.PUBLISHED, limit: int = 3
    ) -> List[Article]:
        articles = self._with_status(status)
        articles.sort(key=lambda a: a.created_at, reverse=True)
        return articles[:limit]


class DynamoSuggestionStore(_DynamoTable, SuggestionStore):
    """Suggestions keyed by id with a (ticket_id, created_at) index."""

    def create(self, suggestion: Suggestion) -> Suggestion:
        self.table.put_item(Item=_to_item(suggestion))
        return suggestion

    def update(self, suggestion_id: str, patch: Dict[str, Any]) -> Suggestion:
        names = {f"#f{i}": field for i, field in enumerate(patch)}
        values = {f":v{i}": _to_value(value) for i, value in enumerate(patch.values())}
        expression = ", ".join(f"#f{i} = :v{i}" for i in range(len(patch)))
        try:
            resp = self.table.update_item(
                Key={"id": suggestion_id},
                UpdateExpression=f"SET {expression}",
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise NotFoundError(f"Suggestion {suggestion_id} not found") from exc
            raise
        return Suggestion.model_validate(_from_item(resp["Attributes"]))

    def get(self, suggestion_id: str) -> Optional[Suggestion]:
        item = self.table.get_item(Key={"id": suggestion_id}).get("Item")
        return Suggestion.model_validate(_from_item(item)) if item else None

    def find_latest_for_ticket(self, ticket_id: str) -> Optional[Suggestion]:
        resp = self.table.query(
            IndexName=SUGGESTIONS_BY_TICKET_INDEX,
            KeyConditionExpression=Key("ticket_id").eq(ticket_id),
            ScanIndexForward=False,
            Limit=1,
        )
        items = resp.get("Items", [])
        return Suggestion.model_validate(_from_item(items[0])) if items else None

    def list_all(self) -> List[Suggestion]:
        return [Suggestion.model_validate(_from_item(i)) for i in self._scan()]


class DynamoAuditStore(_DynamoTable, AuditStore):
    """Partitioned by ticket_id; sort key is `<iso timestamp>#<entry id>`."""

    def append(self, entry: AuditLogEntry) -> None:
        item = _to_item(entry)
        item["sk"] = f"{entry.timestamp.isoformat()}#{entry.id}"
        try:
            self.table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise AuditWriteError(f"Audit write failed: {exc}") from exc

    def find_for_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("ticket_id").eq(ticket_id),
            "ScanIndexForward": True,
        }
        entries: List[AuditLogEntry] = []
        while True:
            resp = self.table.query(**kwargs)
            for item in resp.get("Items", []):
                item = _from_item(item)
                item.pop("sk", None)
                entries.append(AuditLogEntry.model_validate(item))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return entries
            kwargs["ExclusiveStartKey"] = last_key


class DynamoConfigStore(_DynamoTable, ConfigStore):
    def get_or_create_default(self) -> TriageConfig:
        item = self.table.get_item(Key={"id": CONFIG_KEY}).get("Item")
        if item is None:
            default = TriageConfig()
            try:
                self.table.put_item(
                    Item={"id": CONFIG_KEY, **_to_item(default)},
                    ConditionExpression="attribute_not_exists(id)",
                )
            except ClientError as exc:
                if not _is_conditional_failure(exc):
                    raise
                # Another writer created it first; read theirs.
                return self.get_or_create_default()
            logger.info("Created default triage config")
            return default

        raw = _from_item(item)
        raw.pop("id", None)
        try:
            return TriageConfig.model_validate(raw)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Stored config is malformed: {exc.error_count()} errors"
            ) from exc

    def save(self, config: TriageConfig) -> TriageConfig:
        self.table.put_item(Item={"id": CONFIG_KEY, **_to_item(config)})
        return config
