"""OAuth 2.0 authorization code flow with opaque bearer tokens."""

__version__ = "1.0.0"
