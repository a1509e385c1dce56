"""
Test suite for the file-to-html application.

Test Categories:
- Unit tests: patterns, selection, encoding, layering, password policy
- Integration tests: the conversion pipeline and the command-line entry point
"""
