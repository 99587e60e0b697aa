"""Command implementations behind the click entrypoints."""
