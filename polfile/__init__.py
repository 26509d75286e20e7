"""polfile: read and edit registry.pol policy files and their gpt.ini version counter."""

__version__ = "0.1.0"
