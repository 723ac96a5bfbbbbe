"""External classification providers."""
