"""
HTML to Image Render Server
===========================

An HTTP service that converts HTML/CSS/JS fragments into PNG or JPEG
screenshots using a headless Chromium driven by Playwright.

This package provides:
- FastAPI REST endpoints for rendering and metadata extraction
- A pooled, lazily launched browser resource shared across requests
- Asset and font injection from caller-supplied base64 payloads
- Render metadata embedded into PNG text chunks
"""

__version__ = "1.1.1"
__author__ = "html2img Team"
