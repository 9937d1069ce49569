"""Screens for the songbook app."""
