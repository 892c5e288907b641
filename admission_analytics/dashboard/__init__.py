"""Read-only HTTP API over the report catalog, views and export."""
