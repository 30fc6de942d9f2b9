"""Fetch pull requests and their commits from SCM hosting APIs."""

__version__ = "0.1.0"
