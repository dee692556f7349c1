"""Shared utilities: structured logging and LLM construction."""
