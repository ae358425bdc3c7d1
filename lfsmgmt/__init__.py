"""Management console for a content addressable LFS object store."""
