"""Shared utilities (profiling, YAML I/O, merging, frontmatter)."""
