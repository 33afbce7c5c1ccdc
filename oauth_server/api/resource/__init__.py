"""Demo resource server protected by bearer tokens."""
