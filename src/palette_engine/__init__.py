"""Command palette query engine for the project-management UI shell."""

__all__ = ["__version__"]

__version__ = "0.1.0"
