"""
Core Business Logic
==================

Rendering pipeline components independent of the HTTP layer.

Modules:
- rendering: Document assembly, browser management, capture and metadata
"""
