"""HTTP API for browsing perftrend results."""
