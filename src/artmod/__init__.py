"""
Artmod - Artwork Content Moderation Pipeline

Artmod turns an uploaded image plus its title, description and tags into a
reproducible risk assessment and an actionable recommendation.

Core Components:

- **Analyzers**: NSFW (Sightengine provider with a labeled heuristic fallback),
  plagiarism, image quality and text analyzers, each graded against the
  shared threshold registry
- **Aggregator**: Runs the image analyzers concurrently, merges their flags in
  a fixed order and applies the decision policy
- **Result Cache**: TTL cache of moderation results keyed by content fingerprint
- **Batch Processor**: Drives the aggregator over backlogs with progress
  reporting and per-item fault isolation
- **Interactive Console**: Live administration of thresholds, cache and status

Usage:
    from artmod.main import main
    main()  # Starts the moderation console
"""
