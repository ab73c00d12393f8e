"""HTTP API for the Inkognito backing service."""
