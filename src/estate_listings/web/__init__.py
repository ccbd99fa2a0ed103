"""HTTP API and listing-page state."""
