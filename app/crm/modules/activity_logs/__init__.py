"""Customer-facing activity feed (what happened to a customer, and who did it)."""
