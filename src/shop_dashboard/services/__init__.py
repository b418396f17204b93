"""Collaborator interfaces for loading source records."""
