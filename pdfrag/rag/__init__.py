"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- PDF page extraction
- Content filtering and text cleaning
- Document chunking with overlap
- Cosine similarity ranking
- JSON embedding storage
- Ingestion and retrieval pipelines
"""
