"""Infrastructure layer: database connectivity."""
