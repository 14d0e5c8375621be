"""
music_broker.api

API package for the music broker service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and the JSON error envelope.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: session check + delegation to services + status mapping.
