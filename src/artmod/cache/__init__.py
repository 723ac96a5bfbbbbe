"""TTL cache for moderation results."""
