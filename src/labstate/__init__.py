"""Lab State - derived portfolio snapshot pipeline."""

__version__ = "0.1.0"
