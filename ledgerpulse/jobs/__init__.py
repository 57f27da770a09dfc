"""Scheduled and on-demand jobs."""
