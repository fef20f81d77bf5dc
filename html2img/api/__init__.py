"""
API Layer
=========

FastAPI application, routes, authentication and error handling.
"""
