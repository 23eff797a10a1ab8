"""Textual host app and theme for jh."""
