"""Small helpers shared across asset_browser modules."""
