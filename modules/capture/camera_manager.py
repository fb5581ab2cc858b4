"""
Webcam capture for the particle loop.

In async mode a daemon thread keeps overwriting a single slot with the
newest mirrored frame, so rendering never blocks on the camera and stale
frames are dropped rather than queued.
"""

import time
import threading
import logging
import cv2

logger = logging.getLogger(__name__)

_BACKENDS = {
    "auto": cv2.CAP_ANY,
    "v4l2": cv2.CAP_V4L2,
    "gstreamer": cv2.CAP_GSTREAMER,
    "dshow": cv2.CAP_DSHOW,
}


class CameraManager:
    """OpenCV capture device with a latest-frame buffer."""

    def __init__(self, config: dict):
        self._device = config.get("device_id", 0)
        self._width = config.get("width", 1280)
        self._height = config.get("height", 720)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._buffer_size = config.get("buffer_size", 1)
        self._mirror = config.get("flip_horizontal", True)
        self._warmup_frames = config.get("warmup_frames", 10)

        self._cap = None
        self._lock = threading.Lock()
        self._thread = None
        self._running = False

        # Latest-frame slot, guarded by _lock
        self._frame = None
        self._frame_id = 0
        self._frame_time = None
        self._failed_reads = 0

    def _backend_id(self) -> int:
        if self._backend not in _BACKENDS:
            logger.warning("Unknown camera backend '%s', using auto", self._backend)
        return _BACKENDS.get(self._backend, cv2.CAP_ANY)

    def open(self) -> bool:
        """Open and configure the device. Returns False (and logs) on failure."""
        self._cap = cv2.VideoCapture(self._device, self._backend_id())
        if not self._cap.isOpened():
            logger.error("Failed to open camera %s with backend %s",
                         self._device, self._backend)
            self._cap.release()
            self._cap = None
            return False

        for prop, value in ((cv2.CAP_PROP_FRAME_WIDTH, self._width),
                            (cv2.CAP_PROP_FRAME_HEIGHT, self._height),
                            (cv2.CAP_PROP_FPS, self._fps),
                            (cv2.CAP_PROP_BUFFERSIZE, self._buffer_size)):
            self._cap.set(prop, value)

        # Drivers may round the requested mode
        requested = (self._width, self._height)
        self._width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self._width
        self._height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self._height
        logger.info("Camera %s opened at %dx%d (requested %dx%d @ %d fps)",
                    self._device, self._width, self._height,
                    requested[0], requested[1], self._fps)

        # Auto-exposure settles during the first frames
        for _ in range(self._warmup_frames):
            self._cap.read()
        return True

    def _grab(self):
        """Read one frame from the device; mirrored, or None on failure."""
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return cv2.flip(frame, 1) if self._mirror else frame

    def _publish(self, frame) -> int:
        with self._lock:
            if frame is None:
                self._failed_reads += 1
                return 0
            self._frame = frame
            self._frame_id += 1
            self._frame_time = time.monotonic()
            self._failed_reads = 0
            return self._frame_id

    def start_async(self):
        """Start the background capture thread (no-op if closed or running)."""
        if self._running or self._cap is None:
            return
        self._running = True
        self._thread = threading.Thread(target=self._capture_loop,
                                        name="camera-capture", daemon=True)
        self._thread.start()
        logger.info("Async capture started")

    def _capture_loop(self):
        while self._running:
            if not self._publish(self._grab()):
                time.sleep(0.001)

    def read(self):
        """Newest frame from the capture thread, without blocking.

        Returns:
            tuple: (frame_id, BGR frame copy) or (None, None) before the first frame
        """
        with self._lock:
            if self._frame is None:
                return None, None
            return self._frame_id, self._frame.copy()

    def read_sync(self):
        """Blocking read used when threading is disabled.

        Returns:
            tuple: (frame_id, BGR frame) or (None, None)
        """
        if self._cap is None:
            return None, None
        frame = self._grab()
        frame_id = self._publish(frame)
        if not frame_id:
            return None, None
        return frame_id, frame

    @property
    def resolution(self) -> tuple:
        return (self._width, self._height)

    @property
    def failed_reads(self) -> int:
        """Consecutive failed reads since the last good frame."""
        return self._failed_reads

    @property
    def frame_age(self) -> float:
        """Seconds since the newest frame arrived (inf before the first one)."""
        with self._lock:
            if self._frame_time is None:
                return float("inf")
            return time.monotonic() - self._frame_time

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        """Stop the capture thread and release the device."""
        self._running = False
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()
