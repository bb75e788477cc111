"""Automated phone receptionist for a small accounting firm."""
