"""Learning path and skill adaptation engine."""
