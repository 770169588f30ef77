"""LLM client for the I AM CFO assistant."""

from iamcfo.clients.openai_client import OpenAIClient, OpenAIResponse

__all__ = [
    "OpenAIClient",
    "OpenAIResponse",
]
