"""Domain models and errors.

Why:
- Pure, strict data structures (Pydantic v2) and the error vocabulary live here.
- The domain knows nothing about HTTP, the CLI or the filesystem.
"""
