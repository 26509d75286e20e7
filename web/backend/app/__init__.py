"""REST API for the polfile package."""
