"""appcloner: local repository of cloned application payloads.

Discovers cloneable applications through a host inventory, copies their
payload into an isolated per-clone directory under a generated identity,
records each clone in a pluggable metadata store, and supports listing,
renaming, removing and reconciling clones.
"""

__version__ = "0.1.0"
__description__ = "Clone storage and lifecycle management for installed applications"

from appcloner.core.registry import CloneRegistry
from appcloner.models import CloneRecord, SourceArtifact

__all__ = ["CloneRegistry", "CloneRecord", "SourceArtifact", "__version__"]
