"""Command line interface modules.

This package provides the ``client`` and ``server`` commands, which build
the configuration from options and environment variables, set up logging
and the terminal UI, and map failures to exit codes.
"""
