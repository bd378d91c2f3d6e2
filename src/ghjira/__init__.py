"""ghjira - mirror GitHub issues into Jira, keyed by a jira:<KEY> label."""

__version__ = "0.1.0"
