"""Order service with transactional outbox event publishing."""

__version__ = "1.0.0"
