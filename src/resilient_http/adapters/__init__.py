"""Adapters – integrations with concrete transports."""
