"""HTTP boundary — request context binding and access-log middleware."""
