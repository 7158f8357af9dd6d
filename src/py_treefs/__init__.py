"""py-treefs — an in-memory hierarchical file store with a flat record store.

The tree lives entirely in memory.  A session keeps a cursor (the current
directory) into it, a shell turns command strings into operations, and
the persistence layer writes the whole tree to a single record file on
exit and reads it back on startup.
"""

__version__ = "0.1.0"
