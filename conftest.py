"""Root conftest: runs before any test module imports."""

import os

# Rich honours FORCE_COLOR over NO_COLOR; drop it so CLI tables render
# as plain text and substring assertions on the output hold.
os.environ.pop("FORCE_COLOR", None)
os.environ["NO_COLOR"] = "1"
os.environ.pop("INKWELL_CONTENT_ROOT", None)
os.environ.pop("INKWELL_OUTPUT_DIR", None)
os.environ.pop("INKWELL_THRESHOLD", None)
os.environ.pop("INKWELL_WORKERS", None)
