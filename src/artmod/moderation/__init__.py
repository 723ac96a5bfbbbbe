"""
Moderation orchestration.

- **moderation_pipeline.py**: Single-item aggregation across all analyzers.
- **batch_processor.py**: Bounded-concurrency batch moderation with progress callbacks.
- **moderation_stats.py**: Statistics over a set of verdicts.
- **threshold_registry.py**: Process-wide, atomically updated severity thresholds.
"""
