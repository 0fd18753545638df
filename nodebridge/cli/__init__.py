"""CLI module for nodebridge."""
