"""Remote transfer session client."""
from .models import ChunkEnvelope, TableManifest
from .session import ClientSession

__all__ = ["ChunkEnvelope", "ClientSession", "TableManifest"]
