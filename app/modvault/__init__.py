"""modvault - versioned state management for game mod folders."""

__version__ = "0.1.0"
