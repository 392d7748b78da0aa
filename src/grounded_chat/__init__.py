"""
grounded-chat — retrieval-grounded conversational assistant.

Ingested Markdown-table facts are embedded into an in-memory similarity
index; every chat turn retrieves the closest facts, combines them with
recent history, and asks the configured chat model for a reply.
"""

__version__ = "0.1.0"
