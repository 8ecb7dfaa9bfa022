"""Server-side HTML rendering."""
