"""Configuration models and loaders for the dashboard engine."""
