"""
Bitstore - bitstream storage backends for a repository system.

This package contains:
- core: Framework-agnostic bitstream model, key mapping and service contract
- infrastructure: Object-store and filesystem backends
- config: Application configuration
- dependencies: Composition root that picks a backend from settings
"""

__version__ = "0.1.0"
