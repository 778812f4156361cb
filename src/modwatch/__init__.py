"""
Modwatch - Rule-Based Discord Moderation and Audit Bot

Modwatch screens every guild message against content and spam policies and
keeps a per-guild audit trail of moderation and membership events.

Core Components:

- **Moderation Pipeline**: Ordered checks for blocked words and domains, explicit
  keywords, filter bypass attempts, suspicious formatting, mention spam, link
  spam, rapid posting, cross-channel duplicates and adult server invites
- **Violation Handling**: Deletes offending messages, records warnings, applies
  timeouts and escalates repeat offenders
- **Audit Logging**: Renders typed events into embeds and posts them to the
  guild's configured log channel, gated by per-guild logging flags
- **Configuration**: YAML application settings plus JSON documents for per-guild
  blocked words, blocked domains, logging flags and log channels
"""
