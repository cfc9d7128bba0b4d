from __future__ import annotations

project = "Plugin Wiki"
author = "Plugin Wiki"
copyright = "2026, Plugin Wiki"
release = "0.1.0"

extensions = ["myst_parser"]
source_suffix = {".md": "markdown"}
root_doc = "index"

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

html_theme = "furo"
html_title = "Plugin Wiki"
html_static_path = ["_static"]

# Wiki syntax such as ``'lang' has to keep straight quotes.
smartquotes = False

myst_heading_anchors = 3
