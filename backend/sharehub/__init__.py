"""ShareHub: presence-aware real-time message hub."""
