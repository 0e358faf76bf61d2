import argparse
import csv
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from .clock import ManualClock
from .config import EXERCISES, SessionConfig, load_config
from .events import RepetitionCounted
from .landmarks import FrameFormatError, frame_from_landmarks
from .session import ExerciseSession
from .stats import InMemoryStatsStore, JsonStatsStore

logger = logging.getLogger(__name__)

OUTPUT_SUFFIXES = {
    "csv": "metrics.csv",
    "json": "metrics.json",
    "plot": "signal.png",
}

PRIMARY_SIGNAL = {
    "pushups": ("avg_elbow_angle", "Elbow angle (deg)", "Push-up Elbow Angle Over Time"),
    "squats": ("avg_knee_angle", "Knee angle (deg)", "Squat Knee Angle Over Time"),
    "planks": ("elapsed_ms", "Hold time (s)", "Plank Hold Time"),
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay recorded keypoint sessions through the rep counter.")
    parser.add_argument("--input", help="Path to a recorded keypoint session (JSON).")
    parser.add_argument("--input-dir", help="Replay all recordings in a directory.")
    parser.add_argument(
        "--extensions",
        default=".json",
        help="Comma-separated extensions for input-dir.",
    )
    parser.add_argument("--exercise", choices=list(EXERCISES), required=True, help="Exercise performed.")
    parser.add_argument("--output-dir", default="results", help="Directory for outputs.")
    parser.add_argument("--config", default=None, help="JSON file with threshold overrides.")
    parser.add_argument("--stats", default=None, help="JSON stats file to add counted totals to.")
    parser.add_argument("--smoothing", type=float, default=None, help="Smoothing factor (weight of previous frame).")
    parser.add_argument("--visibility-threshold", type=float, default=None, help="Min landmark visibility.")
    parser.add_argument("--elbow-angle", type=float, default=None, help="Push-up bent-elbow threshold.")
    parser.add_argument("--min-shoulder-drop", type=float, default=None, help="Push-up minimum shoulder drop.")
    parser.add_argument("--knee-angle", type=float, default=None, help="Squat bent-knee threshold.")
    parser.add_argument("--hip-drop", type=float, default=None, help="Squat minimum hip drop.")
    parser.add_argument("--tick-interval", type=float, default=None, help="Plank timer tick interval in seconds.")
    parser.add_argument(
        "--plot",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Render the signal plot.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    return parser.parse_args(argv)


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def build_config(args: argparse.Namespace) -> SessionConfig:
    config = load_config(args.config)
    if args.smoothing is not None:
        config.smoothing.factor = args.smoothing
    if args.visibility_threshold is not None:
        config.visibility_threshold = args.visibility_threshold
    if args.elbow_angle is not None:
        config.pushup.elbow_angle_threshold = args.elbow_angle
    if args.min_shoulder_drop is not None:
        config.pushup.min_shoulder_drop = args.min_shoulder_drop
    if args.knee_angle is not None:
        config.squat.knee_angle_threshold = args.knee_angle
    if args.hip_drop is not None:
        config.squat.hip_drop_threshold = args.hip_drop
    if args.tick_interval is not None:
        config.tick_interval_s = args.tick_interval
    # Re-run validation after overrides.
    return SessionConfig.from_dict(config.config_dict())


def load_recording(path: Path) -> Tuple[float, List[Dict[str, object]]]:
    with open(path, "r", encoding="utf-8") as file:
        data = json.load(file)
    if isinstance(data, list):
        data = {"frames": data}
    fps = float(data.get("fps") or 30.0)
    frames = data.get("frames")
    if not isinstance(frames, list):
        raise RuntimeError(f"Recording has no frame list: {path}")
    return fps, frames


def save_csv(path: str, rows: List[Dict[str, object]]) -> None:
    if not rows:
        return
    fieldnames: List[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)
    with open(path, "w", newline="", encoding="utf-8") as file:
        writer = csv.DictWriter(file, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def save_json(path: str, rows: List[Dict[str, object]]) -> None:
    with open(path, "w", encoding="utf-8") as file:
        json.dump(rows, file, indent=2)


def save_plot(path: str, rows: List[Dict[str, object]], rep_events: List[float], exercise: str) -> None:
    key, label, title = PRIMARY_SIGNAL[exercise]
    times = [row["timestamp_s"] for row in rows]
    values = [row[key] if row.get(key) is not None else np.nan for row in rows]
    if key == "elapsed_ms":
        values = [value / 1000.0 for value in values]

    plt.figure(figsize=(12, 5))
    plt.plot(times, values, label=label)
    for event_time in rep_events:
        plt.axvline(event_time, color="tab:green", linestyle="--", alpha=0.5)
    plt.xlabel("Time (s)")
    plt.ylabel(label)
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(path)
    plt.close()


def build_coaching_notes(rows: List[Dict[str, object]], summary: Dict[str, object], exercise: str) -> str:
    total_frames = len(rows)
    if total_frames == 0:
        return "No frames were processed, so no coaching notes are available.\n"

    reason_counts: Dict[str, int] = {}
    tracking_low = 0
    for row in rows:
        if not row.get("tracking_ok", False):
            tracking_low += 1
        reason = row.get("reason") or ""
        if reason:
            reason_counts[reason] = reason_counts.get(reason, 0) + 1

    def ratio(count: int) -> float:
        return count / total_frames if total_frames else 0.0

    def level(count: int) -> str:
        reason_ratio = ratio(count)
        if reason_ratio < 0.03:
            return "low"
        if reason_ratio < 0.1:
            return "medium"
        return "high"

    lines: List[str] = []
    lines.append("Coaching notes")
    lines.append("=" * 14)
    lines.append(f"Exercise: {exercise.title()}")
    if exercise == "planks":
        lines.append(f"Hold time: {summary.get('hold_time_display', '00:00.0')}")
    else:
        lines.append(f"Reps counted: {summary.get('total_reps', 0)}")
    lines.append("")

    advice: List[str] = []
    levels: List[str] = []
    for reason, count in sorted(reason_counts.items(), key=lambda item: item[1], reverse=True):
        reason_level = level(count)
        levels.append(reason_level)
        if reason_level == "low":
            advice.append(f"Occasionally: {reason.lower()}.")
        elif reason_level == "medium":
            advice.append(f"On some frames: {reason.lower()}.")
        else:
            advice.append(f"Frequently: {reason.lower()}. Slow down and reset your position.")

    if not advice:
        advice.append("Form checks passed throughout. Keep the same setup.")
    elif all(item == "low" for item in levels):
        advice.insert(0, "Overall form looked solid; only small touch-ups are needed.")

    tracking_ratio = ratio(tracking_low)
    if tracking_low and tracking_ratio >= 0.2:
        advice.append(
            "Tracking was unstable in several frames. Use good lighting and keep the full body in frame."
        )
    elif tracking_low and tracking_ratio >= 0.08:
        advice.append("Some frames had low tracking. Steadier framing will help.")

    lines.append("What to focus on next time:")
    for item in advice:
        lines.append(f"- {item}")

    return "\n".join(lines) + "\n"


def resolve_inputs(args: argparse.Namespace) -> Tuple[List[Path], bool]:
    if args.input_dir:
        input_dir = Path(args.input_dir)
        if not input_dir.exists():
            raise RuntimeError(f"Input directory not found: {args.input_dir}")
        extensions = [
            ext.strip().lower() if ext.strip().startswith(".") else f".{ext.strip().lower()}"
            for ext in args.extensions.split(",")
            if ext.strip()
        ]
        files = [
            path
            for path in input_dir.iterdir()
            if path.is_file() and path.suffix.lower() in extensions
        ]
        if not files:
            raise RuntimeError(f"No recordings found in {args.input_dir} with {extensions}")
        return sorted(files), True

    if args.input:
        return [Path(args.input)], False

    raise RuntimeError("Provide --input or --input-dir.")


def build_output_paths(output_dir: Path, input_path: Path) -> Dict[str, Path]:
    output_dir = output_dir / input_path.stem
    ensure_dir(str(output_dir))
    return {
        "csv": output_dir / OUTPUT_SUFFIXES["csv"],
        "json": output_dir / OUTPUT_SUFFIXES["json"],
        "plot": output_dir / OUTPUT_SUFFIXES["plot"],
        "summary": output_dir / "summary.json",
        "notes": output_dir / "coaching_notes.txt",
    }


def replay_frames(
    session: ExerciseSession,
    clock: ManualClock,
    frames: List[Dict[str, object]],
    fps: float,
) -> List[Dict[str, object]]:
    """Feed recorded frames through a running session.

    The clock follows frame timestamps; timer ticks are replayed at the configured
    interval between frames so plank time advances as it would live.
    """
    tick_ms = session.config.tick_interval_s * 1000.0
    next_tick_ms = clock.now_ms() + tick_ms
    rows: List[Dict[str, object]] = []

    for frame_index, entry in enumerate(frames):
        if not isinstance(entry, dict):
            entry = {"landmarks": entry}
        timestamp_s = entry.get("timestamp_s")
        timestamp_s = frame_index / fps if timestamp_s is None else float(timestamp_s)
        timestamp_ms = timestamp_s * 1000.0
        if timestamp_ms < clock.now_ms():
            logger.warning("Frame %d goes back in time, skipping", frame_index)
            continue

        while next_tick_ms <= timestamp_ms:
            clock.set(next_tick_ms)
            session.tick()
            next_tick_ms += tick_ms
        clock.set(timestamp_ms)

        landmarks = entry.get("landmarks")
        frame = None
        if landmarks:
            try:
                frame = frame_from_landmarks(landmarks)
            except FrameFormatError as exc:
                logger.warning("Frame %d malformed (%s), treating as no pose", frame_index, exc)

        record = session.process_frame(frame, timestamp_s)
        record["frame_index"] = frame_index
        record["timestamp_s"] = round(timestamp_s, 4)
        rows.append(record)

    session.tick()
    return rows


def process_recording(
    input_path: Path,
    output_dir: Path,
    args: argparse.Namespace,
    config: SessionConfig,
    stats_store,
) -> Dict[str, object]:
    fps, frames = load_recording(input_path)
    clock = ManualClock()
    session = ExerciseSession(args.exercise, config=config, stats_store=stats_store, clock=clock)

    rep_timeline: List[Dict[str, object]] = []

    def on_event(event: object) -> None:
        if isinstance(event, RepetitionCounted):
            rep_timeline.append({"rep": event.new_count, "timestamp_s": clock.now_ms() / 1000.0})

    session.subscribe(on_event)
    session.start()
    rows = replay_frames(session, clock, frames, fps)
    elapsed_ms = session.plank_timer.elapsed_ms
    session.stop()

    outputs = build_output_paths(output_dir, input_path)
    save_csv(str(outputs["csv"]), rows)
    save_json(str(outputs["json"]), rows)
    if args.plot and rows:
        save_plot(str(outputs["plot"]), rows, session.counter.rep_events, args.exercise)

    summary = {
        "input": str(input_path),
        "output_csv": str(outputs["csv"]),
        "output_json": str(outputs["json"]),
        "output_plot": str(outputs["plot"]) if args.plot else None,
        "output_notes": str(outputs["notes"]),
        "frames": len(rows),
        "fps": fps,
        "exercise": args.exercise,
        "total_reps": session.rep_count,
        "rep_timeline": rep_timeline,
        "hold_time_ms": elapsed_ms,
        "hold_time_display": session.plank_timer.display,
        "valid_frames": sum(1 for row in rows if row.get("is_valid")),
        "stats": stats_store.get_user_stats(),
        "config": config.config_dict(),
        "generated_at": datetime.now().isoformat(),
    }
    with open(outputs["summary"], "w", encoding="utf-8") as file:
        json.dump(summary, file, indent=2)

    notes_text = build_coaching_notes(rows, summary, args.exercise)
    with open(outputs["notes"], "w", encoding="utf-8") as file:
        file.write(notes_text)

    if args.exercise == "planks":
        print(f"Done. Hold time: {session.plank_timer.display}")
    else:
        print(f"Done. Reps: {session.rep_count}")
    print(f"CSV:   {outputs['csv']}")
    print(f"JSON:  {outputs['json']}")
    if args.plot:
        print(f"Plot:  {outputs['plot']}")
    print(f"Notes: {outputs['notes']}")

    return summary


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except (OSError, ValueError) as exc:
        raise RuntimeError(f"Invalid config: {exc}") from exc
    stats_store = JsonStatsStore(args.stats) if args.stats else InMemoryStatsStore()

    inputs, batch_mode = resolve_inputs(args)
    output_dir = Path(args.output_dir)

    summaries: List[Dict[str, object]] = []
    for input_path in inputs:
        summaries.append(process_recording(input_path, output_dir, args, config, stats_store))

    if batch_mode:
        ensure_dir(str(output_dir))
        batch_summary_path = output_dir / "batch_summary.json"
        with open(batch_summary_path, "w", encoding="utf-8") as file:
            json.dump(summaries, file, indent=2)
        print(f"Batch summary: {batch_summary_path}")


if __name__ == "__main__":
    main()
