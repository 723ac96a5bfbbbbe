"""
Per-dimension analyzers used by the moderation aggregator.

- **nsfw_analyzer.py**: Provider-backed NSFW scoring with a labeled heuristic fallback.
- **plagiarism_analyzer.py**: Content fingerprinting and similarity estimation.
- **quality_analyzer.py**: Deterministic resolution/format/aspect/size scoring.
- **text_analyzer.py**: Keyword, spam, capitalization and length checks.
- **scoring.py**: Graders deriving flagged state and severity from thresholds.
"""
