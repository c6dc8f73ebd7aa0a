"""LLM-backed review of migrated content: body repair and rendering checks."""
