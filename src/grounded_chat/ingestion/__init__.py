"""
Ingestion — Markdown-table parsing, rate-limited embedding, and chunk
replacement in the persistence layer.
"""

from grounded_chat.ingestion.loader import ParsedTable, load_table_file, parse_table_rows
from grounded_chat.ingestion.pipeline import IngestionPipeline, IngestionReport, IngestionState, RateLimiter

__all__ = [
    "IngestionPipeline",
    "IngestionReport",
    "IngestionState",
    "ParsedTable",
    "RateLimiter",
    "load_table_file",
    "parse_table_rows",
]
