# Copy this file to config.py and fill in your Spotify app credentials.
# Create an app at https://developer.spotify.com/dashboard
# Set Redirect URI to: http://127.0.0.1:8888/callback
#
# Scopes used:
#   - user-library-read (read Liked Songs)
#   - playlist-read-private (list your playlists)
#   - playlist-modify-public playlist-modify-private (add tracks)
#
# SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET / SPOTIFY_REDIRECT_URI in the
# environment take precedence over this file.

CLIENT_ID = "your_client_id_here"
CLIENT_SECRET = "your_client_secret_here"
REDIRECT_URI = "http://127.0.0.1:8888/callback"

# Seconds to wait for the browser redirect before asking for the URL instead.
# None waits forever.
ACCEPT_TIMEOUT = 300
