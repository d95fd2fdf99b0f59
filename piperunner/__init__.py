"""piperunner: run a chain of programs connected like a shell pipeline."""

__version__ = "0.3.0"
