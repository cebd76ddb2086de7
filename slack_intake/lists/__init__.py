"""Slack Lists access: cell codecs, retry policy, gateway and schema."""

from .gateway import CreatedList, ListGateway, RowPage
from .retry import DEFAULT_RETRY_POLICY, RETRYABLE_ERROR_CODES, RetryPolicy, is_retryable
from .schema import COLUMN_ALIASES, LIST_NAME, LIST_SCHEMA, ColumnMapping

__all__ = [
    "COLUMN_ALIASES",
    "ColumnMapping",
    "CreatedList",
    "DEFAULT_RETRY_POLICY",
    "LIST_NAME",
    "LIST_SCHEMA",
    "ListGateway",
    "RETRYABLE_ERROR_CODES",
    "RetryPolicy",
    "RowPage",
    "is_retryable",
]
