"""Payment instruction parsing and execution service."""
