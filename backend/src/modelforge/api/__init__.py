"""HTTP API for ModelForge."""
