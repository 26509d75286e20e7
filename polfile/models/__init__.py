"""Data models for policy file entries: value kinds and the PolicyEntry record."""
