"""
music_broker.services

Service-layer package.

Responsibilities:
- Connection initiation, token exchange and the secondary API gateway.
- Translate third-party client errors into the broker's own error types.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with fake clients.
