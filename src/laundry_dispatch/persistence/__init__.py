"""Database and file persistence."""
