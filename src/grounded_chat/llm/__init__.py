"""
LLM — embedding and chat-model access.

The rest of the package depends on :class:`LLMGateway` only; provider
selection lives in :mod:`grounded_chat.llm.client`.
"""

from grounded_chat.llm.gateway import LLMGateway, clean_title

__all__ = ["LLMGateway", "clean_title"]
