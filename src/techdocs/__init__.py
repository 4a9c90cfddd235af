"""techdocs: bundle a source tree into size-bounded text for an LLM."""

__version__ = "0.1.0"
