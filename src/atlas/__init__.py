"""
Atlas agent orchestration and routing engine.

Routes a natural-language task request to the best-suited agents through three
tiers: a deterministic specialist lookup, memory-grounded candidate
enrichment, and LLM reasoning. Outcomes are fed back into a learning ledger
that keeps specialization and relationship scores current.
"""

__version__ = "0.3.0"
