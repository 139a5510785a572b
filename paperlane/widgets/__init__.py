"""Calculator widgets: formulas, controls and anchor-driven injection."""
