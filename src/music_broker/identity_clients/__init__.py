"""
music_broker.identity_clients

Primary identity provider client package.

Responsibilities:
- Provide the HTTP boundary to Auth0 (authorize/logout URLs, token endpoint, userinfo).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services depend on this boundary; Auth0 exception types stop at the services layer.
