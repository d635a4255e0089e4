"""Integration tests driving the HTTP API end to end."""
