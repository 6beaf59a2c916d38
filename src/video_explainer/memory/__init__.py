"""Learning memory: production history and preference tracking."""
