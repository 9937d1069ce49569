"""Family Songbook App (TUI).

Interactive Textual TUI for a family to keep their song lyrics in a
shared hosted table, search them by title, lyrics or starting note, and
play them in an auto-scrolling lyrics player.
"""

__version__ = "0.1.0"
