"""Family Songbook - shared lyrics with an auto-scrolling player.

This package provides tools for:
- Storing family songs (title, lyrics, starting note, scroll speed)
- Browsing and searching the shared song list
- Playing lyrics in a modal that scrolls at an adjustable rate
"""

__version__ = "0.1.0"
