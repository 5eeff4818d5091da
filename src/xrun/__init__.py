"""xrun - filtered test assembly runner with xunit and NUnit reports."""

__version__ = "0.3.0"
