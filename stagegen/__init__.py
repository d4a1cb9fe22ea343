"""Media generation adapter for Gemini-style image APIs."""

__version__ = "0.1.0"
