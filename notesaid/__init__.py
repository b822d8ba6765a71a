"""NotesAid API: subject notes, curriculum, leaderboard and content review."""

__version__ = "0.2.0"
