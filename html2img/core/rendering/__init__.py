"""
Rendering Engine
===============

Convert HTML fragments into PNG/JPEG screenshots with Playwright.

Components:
- content: Standalone document assembly
- assets: Base64 asset interception and @font-face injection
- browser: Shared browser handle and per-request sessions
- capture: Render request lifecycle
- metadata: PNG text-chunk metadata embedding
- response: Image and JSON response shapes
"""
