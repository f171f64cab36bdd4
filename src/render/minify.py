"""HTML minification for production builds."""

import minify_html as _minify_html


def minify_html(html: str) -> str:
    """Minify a full HTML document, including inline CSS and JS."""
    return _minify_html.minify(html, minify_css=True, minify_js=True)
