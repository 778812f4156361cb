"""
Moderation checks and enforcement for Modwatch.

This package coordinates the moderation pipeline:

- **content_patterns**: Term lists, compiled regexes and domain reputation sets
- **suspicion_analyzer**: Text normalization, bypass detection and suspicion scoring
- **spam_tracker**: Sliding-window link, rapid posting and cross-channel counters
- **violation_handler**: Delete, warn, timeout and notify for a detected violation
- **moderation_pipeline**: Ordered per-message checks ending in downstream features
- **collaborators**: Permission, warning, invite and custom command backends
"""
