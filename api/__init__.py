"""AMU Monitor HTTP API."""
