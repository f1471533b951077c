"""
Application layer: service facade over the RAG core.
"""
