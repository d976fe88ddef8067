"""
Incremental classfile indexer.

Keeps a searchable index of the public classes, methods and fields found in
a JVM project's build output and dependency archives.
"""

__version__ = "0.1.0"
