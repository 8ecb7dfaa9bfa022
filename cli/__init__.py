"""AMU Monitor command-line interface."""
