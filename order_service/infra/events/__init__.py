"""Event infrastructure (transactional outbox)."""
