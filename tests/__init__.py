"""
Test Suite
==========

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP API tests through the FastAPI application
"""
