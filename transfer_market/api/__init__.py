"""HTTP API for the transfer market."""
