# src/services/api/__init__.py
"""
HTTP и WebSocket API.
"""
