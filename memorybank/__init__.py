"""Memory Bank — versioned component store.

Keeps a fixed set of named markdown documents, retains bounded history
of every prior revision, stores them on disk or in SQLite, and
broadcasts change notifications to subscribers.
"""

__version__ = "0.1.0"
