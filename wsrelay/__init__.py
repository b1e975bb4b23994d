"""Peers, overlays, address parsing and WebSocket message and handshake helpers for relays."""

__version__ = "0.1.0"