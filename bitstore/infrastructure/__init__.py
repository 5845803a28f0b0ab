"""
Infrastructure layer - storage backends.

Each subdirectory wraps an external dependency:
- storage: Object storage (S3, R2, transient in-memory)
- filesystem: Local directory tree

Both provide a BitStoreService implementation; the rest of the system
never imports them directly, only through `bitstore.dependencies`.
"""
