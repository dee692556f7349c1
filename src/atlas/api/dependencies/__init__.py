"""FastAPI dependencies for the Atlas API."""
