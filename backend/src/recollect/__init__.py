"""Recollect: hybrid retrieval and question answering over personal notes and todos."""

__version__ = "0.1.0"
