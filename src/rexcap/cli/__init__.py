"""Command line interface for rexcap."""
