"""ChatterBox realtime presence and message fanout service."""
