"""
Configuration management for Modwatch.

This package handles application and guild-level configuration:

- **app_configuration**: YAML application settings (mention limit, link channel,
  spam windows, data directory)
- **key_value_store**: In-memory and JSON-file backed key/value documents
- **policy_config**: Per-guild blocked word and blocked domain policies with a
  global fallback entry
"""
