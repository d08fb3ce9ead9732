"""Clone service package.

Re-exports all public symbols::

    from excalibur.services.clone import ClonePipeline, CloneConfig
"""

from .configs import CloneConfig, PublishingConfig, QueryConfig
from .service import ClonePipeline


__all__ = [
    "CloneConfig",
    "ClonePipeline",
    "PublishingConfig",
    "QueryConfig",
]
