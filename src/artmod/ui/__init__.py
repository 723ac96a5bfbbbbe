"""
User interface components for artmod.

- **console.py**: Interactive prompt_toolkit console for moderating images,
  inspecting status and tuning thresholds at runtime.
"""
