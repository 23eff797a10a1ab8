"""jh: browse Jira tickets, start branches and open pull requests from one TUI."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("jh-cli")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
