"""Business features."""
