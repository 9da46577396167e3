"""PRD Engine: LLM-assisted Project Requirement Document drafting."""

__version__ = "0.1.0"
