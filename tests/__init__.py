"""Test suite for the Ticket Analyzer.

This package contains tests for the ticket analyzer pipeline, including
response parsing, rate-limited batch classification, topic aggregation,
helpdesk fetching against the mock transport, the CLI dashboard and the
dashboard MCP server.
"""
