"""SeaBattle: fleet placement, validation and battle engine."""

__version__ = "0.1.0"
