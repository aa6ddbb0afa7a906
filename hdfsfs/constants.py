"""Module defining various global constants."""

# hdfsfs version
VERSION = "1.0.0"

# Protocol spoken between RpcRemoteClient and RemoteStoreService.
# The major version must be identical on both ends.
PROTOCOL_VERSION = "1.0.0"

# Special exit code for when hdfsfs itself fails.
ERROR_CODE = 254

# Name of the workspace descriptor file that always lives in the local mirror.
DESCRIPTOR_NAME = ".project"
