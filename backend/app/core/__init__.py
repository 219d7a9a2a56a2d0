"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Default admin creation on first startup
- db: Database configuration and connection management
- errors: Error taxonomy and envelope exception handlers
- policy: Role- and ownership-based authorization decisions
- pubsub: Room-based WebSocket event broadcaster
- rate_limit: Per-source request rate limiting middleware
- security: Password hashing, token issuing and identity resolution
"""
