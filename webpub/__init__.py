"""webpub: publish a directory tree as a web app on content-addressed storage.

Uploads every file with bounded concurrency, builds a deterministic
manifest of path -> CID, uploads the manifest, and optionally signs a
registry entry so the app has a stable, key-addressed pointer.
"""

__version__ = "0.1.0"

from webpub.core.pipeline import Publisher, PublishResult
from webpub.config import PublishConfig

__all__ = ["Publisher", "PublishResult", "PublishConfig", "__version__"]
