"""
Application services.
"""

from knowledge_rag.application.services.knowledge_service import KnowledgeService

__all__ = ["KnowledgeService"]
