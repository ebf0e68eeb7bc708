"""CLI command modules for cronledger.

Command groups are wired together in :mod:`cronledger.main`; this package
only holds the command implementations and their shared helpers.
"""
