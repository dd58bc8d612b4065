"""tablehand command-line interface."""
