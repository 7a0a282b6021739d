"""Interactive location resolution for the console's map-based address picker."""

__version__ = "0.1.0"
