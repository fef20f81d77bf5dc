"""
Content Assembler
=================

Wraps caller-supplied HTML, CSS and JavaScript fragments into a standalone
HTML document with a fixed reset stylesheet.

Fragments are inserted verbatim. Sanitization happens at the API boundary, so
a malformed fragment can break the surrounding document structure.
"""

from typing import Optional

import jinja2

from html2img.config.logging import get_logger

logger = get_logger(__name__)

RESET_CSS = """    /* Reset CSS for consistent rendering */
    body {
      margin: 0;
      padding: 0;
      font-family: Arial, sans-serif;
      -webkit-font-smoothing: antialiased;
      -moz-osx-font-smoothing: grayscale;
    }"""

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>HTML Render</title>
  <style>
{{ reset_css }}
    /* User CSS */
    {{ css }}
  </style>
</head>
<body>
  {{ html }}
  <script>
    // User JavaScript
    {{ javascript }}
  </script>
</body>
</html>"""

# Autoescaping stays off: fragments must reach the page untouched.
_environment = jinja2.Environment(autoescape=False, keep_trailing_newline=True)
_template = _environment.from_string(DOCUMENT_TEMPLATE)


def assemble_document(
    html: Optional[str], css: Optional[str] = None, javascript: Optional[str] = None
) -> str:
    """
    Build the document loaded into the render page.

    Args:
        html: Markup placed in the document body
        css: Styles appended after the reset stylesheet
        javascript: Script placed in a trailing inline script tag

    Returns:
        Complete HTML document text
    """
    document = _template.render(
        reset_css=RESET_CSS,
        html=html or "",
        css=css or "",
        javascript=javascript or "",
    )

    logger.debug(
        "Assembled render document",
        html_length=len(html or ""),
        css_length=len(css or ""),
        js_length=len(javascript or ""),
        document_length=len(document),
    )
    return document
