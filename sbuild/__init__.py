# sbuild/__init__.py
"""sbuild - per-package source builds into staging roots."""

__version__ = "1.0.0"
