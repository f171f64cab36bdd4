"""Allow ``python -m inkpress``."""

from inkpress.cli import app

app()
