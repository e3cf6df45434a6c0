# repcount/runtime/cli.py
from __future__ import annotations
import argparse
import sys
import time
from typing import List, Optional

from repcount.common.errors import RepCountError
from repcount.config import Settings, configure_logging, load_settings
from repcount.counter.profiles import exercise_keys
from repcount.counter.session import RepSessionManager
from repcount.counter.sources import CameraFrameSource, ReplayFrameSource
from repcount.data.db import SQLiteRecorder


def _printer(ev: dict):
    t = ev.get("type")
    if t == "rep":
        print(f"rep {ev['count']}", flush=True)
    elif t == "stage":
        print(f"stage: {ev['stage']}", flush=True)
    elif t == "form" and ev.get("alert"):
        print(f"form: {ev['alert']}", flush=True)
    elif t == "session":
        rec = ev["record"]
        print(f"session: {rec['exercise']} x{rec['reps']}", flush=True)


def _manager(settings: Settings, exercise: Optional[str], record: bool) -> RepSessionManager:
    m = RepSessionManager(
        recorder=SQLiteRecorder(settings.db_path) if record else None,
        exercise=exercise or settings.default_exercise,
        visibility_min=settings.visibility_min,
        window=settings.smoothing_window,
    )
    m.set_event_sink(_printer)
    return m


def _close(m: RepSessionManager):
    m.reset()
    if m.recorder is not None:
        m.recorder.close()


def cmd_replay(args, settings: Settings) -> int:
    m = _manager(settings, args.exercise, record=not args.no_save)
    try:
        ReplayFrameSource(args.file).on_each_frame(m.process_frame)
        print(f"{m.exercise}: {m.count} reps", flush=True)
    finally:
        # reps counted before a bad line are still saved
        _close(m)
    return 0


def cmd_camera(args, settings: Settings) -> int:
    m = _manager(settings, args.exercise, record=True)
    errors: List[str] = []

    def overlay() -> str:
        st = m.status()
        return f"{st.exercise} reps:{st.count} {st.stage or '-'} {st.angle}"

    src = CameraFrameSource(settings.camera_index, show_window=args.show, on_error=errors.append, overlay=overlay)
    print("Counting. Press Ctrl+C to stop.", flush=True)
    src.on_each_frame(m.process_frame)
    try:
        while src.is_alive():
            time.sleep(0.2)
    except KeyboardInterrupt:
        print("\nStopping…", flush=True)
        src.stop()
        src.join(timeout=2.0)
    finally:
        _close(m)
    if errors:
        print("Error:", errors[-1], file=sys.stderr)
        return 1
    return 0


def cmd_history(args, settings: Settings) -> int:
    rec = SQLiteRecorder(settings.db_path)
    try:
        if args.clear:
            rec.clear()
            print("history cleared", flush=True)
            return 0
        for s in rec.load_sessions(args.exercise):
            print(f"{s.date}  {s.exercise:<15} {s.reps}", flush=True)
        totals = rec.totals_by_exercise()
        if totals:
            print("---", flush=True)
            for ex, n in totals.items():
                print(f"{ex:<15} {n}", flush=True)
    finally:
        rec.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="repcount", description="Exercise rep counter")
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("replay", help="count reps in a JSON Lines landmark recording")
    r.add_argument("file")
    r.add_argument("--exercise", choices=exercise_keys())
    r.add_argument("--no-save", action="store_true", help="do not write the session to the database")
    r.set_defaults(func=cmd_replay)

    c = sub.add_parser("camera", help="count reps live from the webcam")
    c.add_argument("--exercise", choices=exercise_keys())
    c.add_argument("--show", action="store_true", help="show the camera window")
    c.set_defaults(func=cmd_camera)

    h = sub.add_parser("history", help="list recorded sessions")
    h.add_argument("--exercise", choices=exercise_keys())
    h.add_argument("--clear", action="store_true", help="delete all recorded sessions")
    h.set_defaults(func=cmd_history)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        return args.func(args, settings)
    except RepCountError as e:
        print("Error:", e, file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
