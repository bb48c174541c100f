"""Orchestration: each service validates, plans, persists and publishes one use case."""
