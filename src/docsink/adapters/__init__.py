"""Adapters connecting the sink to stores and to Python logging."""
