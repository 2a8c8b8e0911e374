"""
Document QA module - retrieval-augmented answering over a single static corpus.

This module implements the grounded answering pipeline using:
- OpenAI embeddings (text-embedding-3-small)
- A Supabase `match_documents` RPC (or a local ChromaDB collection) as vector index
- LangGraph for pipeline orchestration
- A grounding-only chat model prompt with bracketed citations

Every answer is built ONLY from retrieved passages, and every citation index
in the answer maps 1:1 to an entry of the returned source manifest.
"""

__version__ = "1.0.0"
