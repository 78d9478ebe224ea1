"""causeway: causal hierarchy extraction for session transcripts."""

__version__ = "0.1.0"
