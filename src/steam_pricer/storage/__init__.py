"""Durable price, portfolio and history stores over whole-document backends."""

from steam_pricer.storage.documents import (
    DocumentStore,
    JsonDocumentStore,
    SqliteDocumentStore,
    create_document_store,
)
from steam_pricer.storage.stores import HistoryStore, PortfolioStore, PriceStore

__all__ = [
    "DocumentStore",
    "JsonDocumentStore",
    "SqliteDocumentStore",
    "create_document_store",
    "PriceStore",
    "PortfolioStore",
    "HistoryStore",
]
