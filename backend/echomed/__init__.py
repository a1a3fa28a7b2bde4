"""EchoMed: nutritional consultation analysis and patient timeline backend."""

__version__ = "1.0.0"
