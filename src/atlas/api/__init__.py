"""FastAPI surface for the orchestrator RPC endpoint."""
