"""Core library: documents, registry, pattern matching and resolution."""
