"""paperlane: render a markdown whitepaper into an interactive web document."""

__version__ = "0.1.0"
