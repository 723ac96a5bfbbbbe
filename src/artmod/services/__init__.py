"""Service facade wiring the moderation components together."""
