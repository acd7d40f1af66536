"""QariMatch - recitation recording, silence gate and reciter matching."""

__version__ = "0.1.0"
