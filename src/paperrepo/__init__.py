"""PaperRepo - research paper repository backend."""

__version__ = "0.1.0"
