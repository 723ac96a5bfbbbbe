"""Request, cache hit, error and latency counters."""
