# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for the project context engine.

This package contains integration tests that exercise reference extraction,
context assembly, caching, file watching and diff previews together.
"""
