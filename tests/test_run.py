import json

import pytest

from formtrack.run import build_coaching_notes, main

from conftest import plank_frame, squat_frame


def as_rows(frame):
    return [[kp.x, kp.y, kp.z, kp.visibility] for kp in frame]


def write_recording(path, frames, fps=10.0):
    payload = {"fps": fps, "frames": [{"landmarks": as_rows(frame) if frame else None} for frame in frames]}
    path.write_text(json.dumps(payload), encoding="utf-8")


def read_summary(output_dir, stem):
    return json.loads((output_dir / stem / "summary.json").read_text(encoding="utf-8"))


def test_squat_replay_writes_outputs(tmp_path):
    frames = [squat_frame(170)] * 5 + [squat_frame(100, hip_y=0.7)] * 5 + [None] + [squat_frame(170)] * 5
    recording = tmp_path / "squats.json"
    write_recording(recording, frames)
    output_dir = tmp_path / "out"
    stats_path = tmp_path / "stats.json"

    main(
        [
            "--input", str(recording),
            "--exercise", "squats",
            "--output-dir", str(output_dir),
            "--smoothing", "0",
            "--stats", str(stats_path),
        ]
    )

    summary = read_summary(output_dir, "squats")
    assert summary["total_reps"] == 1
    assert len(summary["rep_timeline"]) == 1
    assert summary["frames"] == len(frames)
    assert json.loads(stats_path.read_text(encoding="utf-8"))["squats"] == 1
    for name in ("metrics.csv", "metrics.json", "signal.png", "coaching_notes.txt"):
        assert (output_dir / "squats" / name).exists()


def test_plank_replay_reports_hold_time(tmp_path):
    recording = tmp_path / "plank.json"
    write_recording(recording, [plank_frame()] * 31)
    output_dir = tmp_path / "out"

    main(["--input", str(recording), "--exercise", "planks", "--output-dir", str(output_dir), "--no-plot"])

    summary = read_summary(output_dir, "plank")
    assert summary["hold_time_ms"] == pytest.approx(3000)
    assert summary["hold_time_display"] == "00:03.0"
    assert summary["stats"]["planks"] == pytest.approx(3.0)
    assert not (output_dir / "plank" / "signal.png").exists()


def test_batch_mode_writes_batch_summary(tmp_path):
    input_dir = tmp_path / "recordings"
    input_dir.mkdir()
    for name in ("a", "b"):
        write_recording(input_dir / f"{name}.json", [squat_frame(170)] * 3)
    output_dir = tmp_path / "out"

    main(["--input-dir", str(input_dir), "--exercise", "squats", "--output-dir", str(output_dir), "--no-plot"])

    batch = json.loads((output_dir / "batch_summary.json").read_text(encoding="utf-8"))
    assert [entry["total_reps"] for entry in batch] == [0, 0]


def test_missing_input_and_bad_config(tmp_path):
    with pytest.raises(RuntimeError):
        main(["--exercise", "squats", "--output-dir", str(tmp_path)])
    with pytest.raises(RuntimeError):
        main(["--input", "x.json", "--exercise", "squats", "--smoothing", "1.5"])


def test_coaching_notes_rank_frequent_reasons():
    rows = [{"reason": "Go lower", "tracking_ok": True}] * 9 + [{"reason": "", "tracking_ok": True}]
    notes = build_coaching_notes(rows, {"total_reps": 2}, "squats")
    assert "Reps counted: 2" in notes
    assert "Frequently: go lower." in notes
    assert build_coaching_notes([], {}, "squats").startswith("No frames")


def test_null_timestamps_fall_back_to_frame_rate(tmp_path):
    recording = tmp_path / "nulls.json"
    frames = [{"timestamp_s": None, "landmarks": as_rows(squat_frame(170))} for _ in range(3)]
    recording.write_text(json.dumps({"fps": 10.0, "frames": frames}), encoding="utf-8")
    output_dir = tmp_path / "out"

    main(["--input", str(recording), "--exercise", "squats", "--output-dir", str(output_dir), "--no-plot"])

    rows = json.loads((output_dir / "nulls" / "metrics.json").read_text(encoding="utf-8"))
    assert [row["timestamp_s"] for row in rows] == pytest.approx([0.0, 0.1, 0.2])
