"""Pull request review bot: triage, detect, aggregate, post."""

__version__ = "0.3.0"
