"""Pure per-service and ranking calculations."""
