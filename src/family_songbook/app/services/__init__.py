"""Services for the songbook app."""
