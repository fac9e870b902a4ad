"""mercury: social graph relationship engine and name search."""

__version__ = "0.4.0"
