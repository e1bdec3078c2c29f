"""HTTP API for RecallForge."""
