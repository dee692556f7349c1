"""Atlas API routes."""
