"""gbuild - incremental build graph executor.

Turns a unit and its transitive imports into a graph of memoized build
targets (compile, assemble, archive, link) and runs them concurrently.
"""

__version__ = "0.1.0"
