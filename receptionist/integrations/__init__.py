"""Adapters for the calendar provider, notification sink, and intent oracle."""
