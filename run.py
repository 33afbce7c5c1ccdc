#!/usr/bin/env python3
"""CLI entry point for the OAuth authorization server.

Starts the authorization server with Hypercorn on SERVER_HOST:PORT.
For ASGI deployment, build the app with oauth_server.api.server.create_api_app.
"""

from oauth_server.main import main

if __name__ == "__main__":
    main()
