"""Quote caching, validation and price fallback."""
