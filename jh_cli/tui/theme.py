"""Colour constants and shared CSS blocks for the jh TUI."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Colour constants
# ---------------------------------------------------------------------------

COL_GREEN = "#00ff41"
COL_CYAN = "#00e5ff"
COL_PALE = "#b8d4b8"
COL_AMBER = "#ffb300"
COL_RED = "#ff5555"
COL_BG = "#0a0e0a"
COL_SURFACE = "#0d1a0d"
COL_MUTED = "#4d8a4d"


# ---------------------------------------------------------------------------
# Shared CSS blocks, composed into JhApp.CSS
# ---------------------------------------------------------------------------

SCREEN_CSS = f"""
    Screen {{ background: {COL_BG}; color: {COL_PALE}; }}
"""

CONTEXT_BAR_CSS = f"""
    .context-bar {{
        height: 1;
        background: {COL_SURFACE};
        color: {COL_GREEN};
        padding: 0 1;
        text-style: bold;
    }}
"""

BODY_CSS = f"""
    #body-scroll {{ height: 1fr; background: {COL_BG}; }}
    #body {{ padding: 1 2; }}
"""

HINTS_CSS = f"""
    #hints {{
        height: 1;
        background: {COL_SURFACE};
        color: {COL_MUTED};
        padding: 0 1;
    }}
"""


def context_bar_text(context) -> str:
    """One-line summary of the repo, branch and linked ticket."""
    if context is None:
        return "  jh"
    if not context.is_git_repo:
        return "  not a git repository"
    repo = context.repo_identifier or "—"
    branch = context.current_branch or "—"
    ticket = context.linked_ticket_id or "—"
    return f"  repo: {repo}   branch: {branch}   ticket: {ticket}"
