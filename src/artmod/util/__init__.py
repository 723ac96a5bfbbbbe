"""
Utility functions and helpers for artmod.

This package provides reusable utilities:

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log aggregation. Suppresses noise from
  verbose libraries (urllib3, requests, Pillow). Uses prompt_toolkit for
  non-blocking console I/O.

- **image_utils.py**: Image loading for moderation. Downloads images with a
  timeout and size cap, decodes metadata with Pillow (HEIF included), computes
  content fingerprints, and derives cache keys.
"""
