"""
Data Models
===========

Pydantic models for render requests, render metadata and API responses.
"""
