"""Reveal and parallax motion controllers."""
