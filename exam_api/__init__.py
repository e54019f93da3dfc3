"""HTTP API for timed exam sessions."""
