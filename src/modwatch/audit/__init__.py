"""
Audit logging for Modwatch.

- **embed_factory**: Builds one Discord embed per action kind
- **logging_manager**: Per-guild logging flags, log channel routing and dispatch
"""
