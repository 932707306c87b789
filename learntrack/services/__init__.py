"""Business logic services: playlist sync, progress tracking, aggregation."""
