"""Real-time chat: connection registry, presence and message routing."""
