"""Latest-wins buffer for front range-sensor snapshots.

The sensor feed writes into the buffer asynchronously while the controller
reads it during a computation. The snapshot and its availability flag are
swapped together under a lock, so a reader never sees the flag set while the
range array is only partially replaced.
"""

import logging
import threading
from typing import Optional

from .config import FRONT_LASER_FRAME
from .model import RangeScan

logger = logging.getLogger(__name__)


class RangeScanBuffer:
    """Holds the most recent front-laser snapshot.

    Attributes:
        front_frame: Only scans from this frame are accepted.
    """

    def __init__(self, front_frame: str = FRONT_LASER_FRAME) -> None:
        self.front_frame = front_frame
        self._lock = threading.Lock()
        self._scan: Optional[RangeScan] = None
        self._available: bool = False

    def update(self, scan: RangeScan) -> None:
        """Store `scan` if it comes from the front sensor, otherwise drop it.

        Args:
            scan: New snapshot. Snapshots are immutable, so it is stored as is.
        """
        if scan.frame_id != self.front_frame:
            logger.debug(f"Ignoring scan from frame {scan.frame_id} (expecting {self.front_frame})")
            return

        with self._lock:
            self._scan = scan
            self._available = True

    def latest(self) -> Optional[RangeScan]:
        """Return the current snapshot, or None if none was accepted yet."""
        with self._lock:
            return self._scan if self._available else None

    @property
    def available(self) -> bool:
        with self._lock:
            return self._available

    def reset(self) -> None:
        """Forget the stored snapshot (availability drops back to False)."""
        with self._lock:
            self._scan = None
            self._available = False
