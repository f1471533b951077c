"""
knowledge_rag: retrieval-augmented generation core for knowledge-grounded chat.

Chunks documents, embeds and indexes them in Qdrant with durable chunk
records, retrieves and reranks module-scoped context, and composes it into
a token-safe message list for the chat model.
"""

__version__ = "0.1.0"
