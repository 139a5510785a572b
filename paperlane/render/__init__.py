"""Markdown rendering and editorial passes over the rendered tree."""
