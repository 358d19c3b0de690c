"""tfsgit CLI: inspect and materialize changeset applications."""

from ._helpers import main  # noqa: F401 (entry point)

# Import command modules to register Click commands with the main group.
from . import _apply  # noqa: F401
