"""
Configuration management for artmod.

- **app_configuration.py**: YAML configuration loader for cache, threshold,
  analyzer, batch, text and monitoring settings. Falls back to defaults on
  missing or malformed config files.

- **provider_settings.py**: NSFW provider credentials read from the environment.
"""
