"""Question answering over a document using a fact graph and entity embeddings."""

__version__ = "0.1.0"
