"""
Discord cogs and shared services for Modwatch.

This package wires the moderation and audit components into Discord's
event system:

- **services**: Builds the shared component graph once per bot
- **cogs.message_listener**: Runs the pipeline on new messages and logs edits/deletes
- **cogs.events_listener**: Presence, guild initialization and member join/leave logging
"""
