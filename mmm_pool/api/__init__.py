"""HTTP API for MMM pools."""
