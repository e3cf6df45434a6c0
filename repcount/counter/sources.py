from __future__ import annotations
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Protocol, Union

from repcount.common.errors import FrameFormatError
from repcount.counter.pose_core import JointSample

logger = logging.getLogger(__name__)

FrameCallback = Callable[[List[Optional[JointSample]]], Any]


class FrameSource(Protocol):
    def on_each_frame(self, callback: FrameCallback) -> None: ...


def parse_joint(item: Any) -> Optional[JointSample]:
    """Accept [x, y], [x, y, vis], {"x","y","visibility"} or None."""
    if item is None:
        return None
    try:
        if isinstance(item, dict):
            vis = item.get("visibility")
            return JointSample(float(item["x"]), float(item["y"]), 1.0 if vis is None else float(vis))
        if isinstance(item, (list, tuple)) and len(item) in (2, 3):
            vis = item[2] if len(item) == 3 and item[2] is not None else 1.0
            return JointSample(float(item[0]), float(item[1]), float(vis))
    except (KeyError, TypeError, ValueError) as e:
        raise FrameFormatError(f"bad landmark {item!r}: {e}") from None
    raise FrameFormatError(f"bad landmark {item!r}")


def parse_joint_set(obj: Any) -> List[Optional[JointSample]]:
    if isinstance(obj, dict):
        obj = obj.get("landmarks")
    if not isinstance(obj, list):
        raise FrameFormatError("frame must be a list of landmarks or {'landmarks': [...]}")
    return [parse_joint(item) for item in obj]


def landmarks_to_joints(landmarks: Iterable[Any]) -> List[Optional[JointSample]]:
    """Convert MediaPipe NormalizedLandmark objects (x, y, visibility attributes)."""
    return [JointSample(float(lm.x), float(lm.y), float(getattr(lm, "visibility", 1.0))) for lm in landmarks]


class ReplayFrameSource:
    """
    Feeds recorded frames from a JSON Lines file, one frame per line,
    synchronously. Blank lines are skipped.
    """
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def frames(self):
        with self.path.open("r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield parse_joint_set(json.loads(line))
                except json.JSONDecodeError as e:
                    raise FrameFormatError(f"{self.path}:{lineno}: invalid JSON ({e.msg})") from None
                except FrameFormatError as e:
                    raise FrameFormatError(f"{self.path}:{lineno}: {e}") from None

    def on_each_frame(self, callback: FrameCallback):
        n = 0
        for joints in self.frames():
            callback(joints)
            n += 1
        logger.info("replayed %d frames from %s", n, self.path)


class CameraFrameSource(threading.Thread):
    """
    Webcam + MediaPipe Pose on a daemon thread. Each detected pose is handed
    to the callback; frames with no person are passed as an empty joint set.
    """
    def __init__(
            self,
            camera_index: int = 0,
            show_window: bool = False,
            on_error: Optional[Callable[[str], None]] = None,
            overlay: Optional[Callable[[], str]] = None,
    ):
        super().__init__(daemon=True)
        self.camera_index = camera_index
        self.show_window = show_window
        self.on_error = on_error
        self.overlay = overlay
        self._callback: Optional[FrameCallback] = None
        self._stop_evt = threading.Event()
        self.cap = None
        self.pose = None

    def on_each_frame(self, callback: FrameCallback):
        self._callback = callback
        self.start()

    def run(self):
        import cv2
        import mediapipe as mp

        mp_pose = mp.solutions.pose
        try:
            self.cap = cv2.VideoCapture(self.camera_index)
            if not self.cap.isOpened():
                raise RuntimeError(f"Webcam {self.camera_index} not available")

            self.pose = mp_pose.Pose(min_detection_confidence=0.5, min_tracking_confidence=0.5)

            if self.show_window:
                cv2.namedWindow("repcount", cv2.WINDOW_NORMAL)

            while not self._stop_evt.is_set():
                ok, frame = self.cap.read()
                if not ok:
                    time.sleep(0.01)
                    continue
                image = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                res = self.pose.process(image)
                joints = landmarks_to_joints(res.pose_landmarks.landmark) if res.pose_landmarks else []
                if self._callback is not None:
                    self._callback(joints)

                if self.show_window:
                    if self.overlay is not None:
                        cv2.putText(frame, self.overlay(), (20, 40),
                                    cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 136), 2)
                    cv2.imshow("repcount", frame)
                    if cv2.waitKey(1) & 0xFF == ord("q"):
                        self._stop_evt.set()

        except Exception as e:
            logger.exception("camera source failed")
            if self.on_error:
                self.on_error(str(e))
        finally:
            if self.cap is not None:
                self.cap.release()
            if self.pose is not None:
                self.pose.close()
            if self.show_window:
                cv2.destroyAllWindows()

    def stop(self):
        self._stop_evt.set()
