"""
music_broker.auth

Authentication package.

Responsibilities:
- Session cookie sealing/unsealing helpers.
- The session accessor used by every protected route.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The session itself is established by `api.routers.auth` after the Auth0 login
# handshake; this package only reads and writes the cookie representation.
