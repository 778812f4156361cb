"""
Shared data types for Modwatch.

- **action_datatypes**: Audit log action kinds, logging flags and event payloads
- **moderation_datatypes**: Violation kinds, warnings and pipeline outcomes
"""
