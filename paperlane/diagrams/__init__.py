"""Diagram recognition, layout and interactive flow graphs."""
