"""Core configuration, paths, errors and the command facade."""
