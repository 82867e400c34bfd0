"""Client Pulse: relationship intelligence cards built from meeting logs."""

__version__ = "1.0.0"
