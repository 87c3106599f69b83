"""HTTP clients for EventStore nodes."""
