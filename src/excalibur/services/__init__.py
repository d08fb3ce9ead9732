"""Clone pipeline and shared relay infrastructure.

Services are the top layer, depending on [excalibur.core][excalibur.core],
[excalibur.nips][excalibur.nips], [excalibur.utils][excalibur.utils] and
[excalibur.models][excalibur.models].

```text
VALIDATING_INPUT -> QUERYING -> TRANSFORMING -> PUBLISHING -> DONE
```

Attributes:
    ClonePipeline: One-shot identity cloner.
    RelayPool: Concurrent relay query and publish used by the pipeline.

Examples:
    ```python
    from excalibur.services import ClonePipeline

    result = await ClonePipeline().run("npub1...", "nsec1...")
    ```
"""

from .clone import ClonePipeline, CloneConfig
from .common import RelayPool, RelayPoolConfig


__all__ = [
    "CloneConfig",
    "ClonePipeline",
    "RelayPool",
    "RelayPoolConfig",
]
