"""Policy entry storage."""
