"""Core publish pipeline: walk, upload, build and publish the manifest."""
