"""HTTP API routes for SilenceCut."""

import json
import logging
import queue
import threading
import uuid
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    request,
    send_file,
)

from silencecut.analyzers.levels import AnalysisCancelled
from silencecut.engine import process
from silencecut.ffutil import DecodeFailureError, NoAudioTrackError
from silencecut.manifest import DetectionSettings, Manifest

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "project" not in request.files:
        return jsonify({"error": "No project file provided"}), 400

    f = request.files["project"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    project_path = job_dir / "project.fcpxml"
    f.save(project_path)

    audio_path = None
    audio = request.files.get("audio")
    if audio is not None and audio.filename:
        audio_path = job_dir / f"audio{Path(audio.filename).suffix or '.wav'}"
        audio.save(audio_path)

    _jobs[job_id] = {
        "dir": job_dir,
        "project_path": project_path,
        "audio_path": audio_path,
        "filename": f.filename,
        "status": "uploaded",
    }

    return jsonify({"job_id": job_id, "filename": f.filename, "audio": audio_path is not None})


@bp.route("/api/jobs/<job_id>/process", methods=["POST"])
def start_process(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] not in ("uploaded", "done", "error", "cancelled"):
        return jsonify({"error": f"Job is already {job['status']}"}), 409

    config = request.get_json(silent=True) or {}
    sc = config.get("silence", {})
    defaults = DetectionSettings()
    try:
        settings = DetectionSettings(
            threshold_db=float(sc.get("threshold_db", defaults.threshold_db)),
            min_duration=float(sc.get("min_duration", defaults.min_duration)),
            padding=float(sc.get("padding", defaults.padding)),
        )
        frame_rate = float(config["frame_rate"]) if config.get("frame_rate") else None
    except (TypeError, ValueError):
        return jsonify({"error": "Detection settings must be numbers"}), 400

    manifest = Manifest(
        input=job["project_path"],
        output=job["dir"] / "output.fcpxml",
        audio=job["audio_path"],
        frame_rate=frame_rate,
        silence=settings,
    )

    progress_queue: queue.Queue = queue.Queue()
    cancel_event = threading.Event()
    job["progress_queue"] = progress_queue
    job["cancel_event"] = cancel_event
    job["status"] = "processing"
    job["error"] = None

    def run():
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            result = process(manifest, on_progress=on_progress, cancel_event=cancel_event)
            job["result"] = {
                "output_path": str(result.output_path),
                "frame_rate": result.frame_rate,
                "intervals": [
                    {"start": i.start, "end": i.end} for i in result.intervals
                ],
                "segments_removed": result.segments_removed,
                "silence_duration": result.silence_duration,
                "removed_seconds": result.removed_seconds,
                "clips_moved": result.clips_moved,
                "clips_total": result.clips_total,
                "skipped": [
                    {"clip_id": s.clip_id, "reason": s.reason} for s in result.skipped
                ],
                "overlapping": result.overlapping,
            }
            job["status"] = "done"
        except AnalysisCancelled:
            job["status"] = "cancelled"
        except (NoAudioTrackError, DecodeFailureError) as e:
            job["status"] = "error"
            job["error"] = str(e)
        except Exception as e:
            logger.exception("Job %s failed", job_id)
            job["status"] = "error"
            job["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/jobs/<job_id>/cancel", methods=["POST"])
def cancel(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "processing":
        return jsonify({"error": f"Job is {job['status']}, not processing"}), 409

    job["cancel_event"].set()
    return jsonify({"status": "cancelling"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job.get("progress_queue")

    if q is None:
        return jsonify({"error": "No processing in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                elif job["status"] == "cancelled":
                    data = json.dumps({"stage": "cancelled"})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": job.get("result"),
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    stem = Path(job["filename"]).stem
    return send_file(
        output_path,
        mimetype="application/xml",
        as_attachment=True,
        download_name=f"{stem}_nosilence.fcpxml",
    )


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"], "filename": job.get("filename")}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)
