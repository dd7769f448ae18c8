"""Infrastructure layer - configuration, logging, booking and AI clients."""
