"""Realtime collaboration sessions (Socket.IO).

This package holds the session relay: token verification, rate limiting,
slug-scoped rooms and presence sync with the application server.
"""
