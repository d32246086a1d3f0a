"""Data acquisition and caching core for the plugin catalogue browser."""
