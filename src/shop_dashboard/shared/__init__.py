"""Shared models, exceptions, logging and metrics for the dashboard engine."""
