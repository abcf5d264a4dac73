"""Infrastructure adapters (database, messaging, logging, outbox)."""
