"""
Pydantic models shared across the server.

Subpackages:
    io: Request and response schemas of the HTTP API.
"""
