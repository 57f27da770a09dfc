"""Report artifact generation."""
