"""Team chat backend application."""
