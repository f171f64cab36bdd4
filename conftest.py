"""Root conftest: runs before any test module imports inkpress.cli."""

import os

# CI runners set FORCE_COLOR, which makes Rich emit ANSI codes into CLI
# output and breaks plain-text assertions on it.
os.environ.pop("FORCE_COLOR", None)
os.environ["NO_COLOR"] = "1"
