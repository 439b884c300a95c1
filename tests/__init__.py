"""Betteh Music CMS test suite."""
