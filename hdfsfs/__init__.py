"""
Virtual file system view of a remote, HDFS-like store.

The file store in this package lets a host IDE browse and edit a remote store as if it
were a regular file hierarchy. It combines three sources of truth:

* The remote store, reached through the narrow RemoteClient interface.
* A local mirror in the workspace for files that must always be available locally,
  like the .project workspace descriptor.
* A metadata cache in every FileStore that avoids redundant remote calls and is thrown
  away by any operation that may have changed the entry.
"""
