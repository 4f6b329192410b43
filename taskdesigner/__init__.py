"""Performance task designer: a step-by-step curriculum chatbot backend."""

__version__ = "0.1.0"
