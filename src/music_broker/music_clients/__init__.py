"""
music_broker.music_clients

Secondary provider client package.

Responsibilities:
- Provide the bearer-authenticated HTTP boundary to the Spotify Web API.
"""

# Package marker.
