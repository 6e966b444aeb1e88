import html
import logging
import os
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse

from training_logger import sync
from training_logger.bootstrap import AppBootstrapper, FormSurface, page_surface
from training_logger.config import save_remote_config
from training_logger.github import GitHubClient, GitHubError
from training_logger.loaders import REMOTE_LOADERS, default_client, update_analytics
from training_logger.records import (
    index_of,
    normalize_measurement,
    normalize_picture_entry,
    normalize_program,
    normalize_workout_edit,
    picture_ref,
    search_programs,
    search_workouts,
    sort_by,
    utc_now_iso,
    workout_from_program,
)
from training_logger.state import AppState

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SET_FIELDS = {"weight", "reps", "rpe", "completed", "notes"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".webm", ".m4v", ".avi"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = AppState()
    surface = page_surface()
    factory = app.state.client_factory
    bootstrapper = AppBootstrapper(
        state,
        surface,
        loaders=[partial(loader, client_factory=factory) for loader in REMOTE_LOADERS] + [update_analytics],
    )
    app.state.training = state
    app.state.surface = surface
    app.state.bootstrap_report = bootstrapper.initialize()
    yield


app = FastAPI(lifespan=lifespan)
app.state.client_factory = default_client


def get_app_state(request: Request) -> AppState:
    return request.app.state.training


def get_surface(request: Request) -> FormSurface:
    return request.app.state.surface


def get_client(request: Request, state: AppState = Depends(get_app_state)) -> GitHubClient:
    return request.app.state.client_factory(state)


def require_github(state: AppState) -> None:
    if not state.remote_config.is_configured:
        raise HTTPException(status_code=400, detail="Please configure GitHub integration first.")


def github_http_error(err: GitHubError) -> HTTPException:
    status = err.status_code if 400 <= err.status_code < 500 else 502
    return HTTPException(status_code=status, detail=str(err))


def find_or_404(items: list[dict[str, Any]], record_id: str, what: str) -> int:
    idx = index_of(items, record_id)
    if idx < 0:
        raise HTTPException(status_code=404, detail=f"{what} not found.")
    return idx


def require_workout(state: AppState) -> dict[str, Any]:
    if not state.current_workout:
        raise HTTPException(status_code=400, detail="No active workout.")
    return state.current_workout


def check_extension(filename: str, allowed: set[str]) -> str:
    name = Path(filename).name
    if Path(name).suffix.lower() not in allowed:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {name}")
    return name


@app.get("/", response_class=HTMLResponse)
def page(surface: FormSurface = Depends(get_surface)) -> str:
    values = {k: html.escape(v or "", quote=True) for k, v in surface.as_dict().items()}
    return f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Training Logger</title>
  <style>
    :root {{
      --bg: #f4f6f8;
      --panel: #ffffff;
      --line: #dfe4ea;
      --text: #1a1a1a;
      --muted: #666;
      --good: #28a745;
      --radius: 10px;
    }}
    * {{ box-sizing: border-box; }}
    body {{ margin: 0; font-family: system-ui, -apple-system, "Segoe UI", Roboto, Arial, sans-serif; background: var(--bg); color: var(--text); }}
    main {{ max-width: 960px; margin: 0 auto; padding: 16px; display: grid; gap: 16px; }}
    section {{ background: var(--panel); border: 1px solid var(--line); border-radius: var(--radius); padding: 16px; }}
    label {{ display: block; font-size: 13px; color: var(--muted); margin-top: 8px; }}
    input, textarea {{ width: 100%; padding: 6px 8px; border: 1px solid var(--line); border-radius: 6px; }}
    button {{ margin-top: 10px; padding: 6px 12px; border-radius: 6px; border: 0; background: var(--text); color: #fff; }}
    pre {{ white-space: pre-wrap; font-size: 12px; }}
  </style>
</head>
<body>
  <main>
    <section>
      <h2>Body measurements</h2>
      <label for="measurementDate">Date</label>
      <input id="measurementDate" type="date" value="{values.get('measurementDate', '')}" />
      <label for="weight">Weight (kg)</label>
      <input id="weight" type="number" step="0.1" />
      <label for="bodyFat">Body fat (%)</label>
      <input id="bodyFat" type="number" step="0.1" />
      <label for="muscleMass">Muscle mass (kg)</label>
      <input id="muscleMass" type="number" step="0.1" />
      <button onclick="saveMeasurement()">Save measurement</button>
    </section>
    <section>
      <h2>Progress pictures</h2>
      <label for="pictureDate">Date</label>
      <input id="pictureDate" type="date" value="{values.get('pictureDate', '')}" />
      <label for="pictureFiles">Pictures</label>
      <input id="pictureFiles" type="file" accept="image/*" multiple />
      <label for="pictureNotes">Notes</label>
      <textarea id="pictureNotes"></textarea>
      <button onclick="saveProgressPictures()">Save pictures</button>
    </section>
    <section>
      <h2>GitHub</h2>
      <label for="githubToken">Token</label>
      <input id="githubToken" type="password" placeholder="{'saved' if values.get('githubToken') else ''}" />
      <label for="githubUsername">Username</label>
      <input id="githubUsername" value="{values.get('githubUsername', '')}" />
      <label for="githubRepo">Repository</label>
      <input id="githubRepo" value="{values.get('githubRepo', '')}" />
      <label for="githubFolder">Folder</label>
      <input id="githubFolder" value="{values.get('githubFolder', '')}" />
      <button onclick="saveGithubConfig()">Save</button>
      <button onclick="api('POST', '/settings/test')">Test connection</button>
      <button onclick="api('POST', '/sync')">Sync all data</button>
    </section>
    <section>
      <h2>Status</h2>
      <pre id="status"></pre>
    </section>
  </main>
  <script>
    async function api(method, url, body, raw) {{
      const opts = {{ method, headers: {{}} }};
      if (raw) {{
        opts.body = raw;
      }} else if (body !== undefined) {{
        opts.headers['Content-Type'] = 'application/json';
        opts.body = JSON.stringify(body);
      }}
      const resp = await fetch(url, opts);
      const data = await resp.json();
      document.getElementById('status').textContent = JSON.stringify(data, null, 2);
      if (!resp.ok) throw new Error(data.detail || resp.status);
      return data;
    }}

    function val(id) {{ return document.getElementById(id).value.trim(); }}

    function saveMeasurement() {{
      return api('POST', '/measurements', {{
        date: val('measurementDate'), weight: val('weight'),
        bodyFat: val('bodyFat'), muscleMass: val('muscleMass'),
      }});
    }}

    async function saveProgressPictures() {{
      const files = document.getElementById('pictureFiles').files;
      const pictures = [];
      for (const file of files) {{
        const url = '/progress-pictures/upload?filename=' + encodeURIComponent(file.name) +
          '&content_type=' + encodeURIComponent(file.type || 'image/jpeg');
        pictures.push(await api('POST', url, undefined, file));
      }}
      return api('POST', '/progress-pictures', {{ date: val('pictureDate'), notes: val('pictureNotes'), pictures }});
    }}

    function saveGithubConfig() {{
      const payload = {{ username: val('githubUsername'), repo: val('githubRepo'), folder: val('githubFolder') }};
      if (val('githubToken')) payload.token = val('githubToken');
      return api('PUT', '/settings', payload);
    }}

    api('GET', '/bootstrap');
  </script>
</body>
</html>
    """


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.get("/bootstrap")
def bootstrap_status(
    request: Request,
    state: AppState = Depends(get_app_state),
    surface: FormSurface = Depends(get_surface),
) -> dict[str, Any]:
    report = request.app.state.bootstrap_report
    fields = surface.as_dict()
    if fields.get("githubToken"):
        fields["githubToken"] = "*" * 8
    return {"report": report.to_dict(), "form": fields, "state": state.snapshot()}


@app.get("/state")
def get_state(state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    return state.snapshot()


@app.get("/settings")
def get_settings(state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    return state.remote_config.masked()


@app.put("/settings")
def put_settings(
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    surface: FormSurface = Depends(get_surface),
) -> dict[str, Any]:
    with state.lock:
        merged = state.remote_config.to_dict()
        merged.update({k: v for k, v in payload.items() if k in merged})
        config = save_remote_config(merged)
        state.remote_config = config
        surface.set_value_if_present("githubToken", config.token)
        surface.set_value_if_present("githubUsername", config.username)
        surface.set_value_if_present("githubRepo", config.repo)
        surface.set_value_if_present("githubFolder", config.folder)
    return config.masked()


@app.post("/settings/test")
def test_settings(state: AppState = Depends(get_app_state), client: GitHubClient = Depends(get_client)) -> dict[str, Any]:
    if not state.remote_config.is_configured:
        raise HTTPException(status_code=400, detail="Please complete all GitHub configuration fields first.")
    try:
        return client.check_connection()
    except GitHubError as err:
        raise github_http_error(err) from err


@app.get("/programs")
def get_programs(search: str = Query(default=""), state: AppState = Depends(get_app_state)) -> list[dict[str, Any]]:
    return search_programs(state.programs, search)


@app.post("/programs")
def create_program(
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    program = normalize_program(payload)
    with state.lock:
        state.programs.append(program)
        sync.cache_programs(state)
        status = sync.push(state, client, lambda c: sync.save_program(c, program), "program")
    return {"program": program, **status}


@app.put("/programs/{program_id}")
def update_program(
    program_id: str,
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.programs, program_id, "Program")
        existing = state.programs[idx]
        program = normalize_program(payload, existing=existing)
        state.programs[idx] = program

        def write(c: GitHubClient) -> None:
            # the file name embeds the program name
            if existing.get("name") != program["name"]:
                sync.delete_program(c, existing)
            sync.save_program(c, program)

        sync.cache_programs(state)
        status = sync.push(state, client, write, "program")
    return {"program": program, **status}


@app.delete("/programs/{program_id}")
def delete_program(
    program_id: str,
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.programs, program_id, "Program")
        program = state.programs.pop(idx)
        if state.active_program_id == program_id:
            state.end_workout()
        sync.cache_programs(state)
        status = sync.push(state, client, lambda c: sync.delete_program(c, program), "program deletion")
    return {"ok": True, **status}


@app.post("/programs/sync")
def sync_programs(state: AppState = Depends(get_app_state), client: GitHubClient = Depends(get_client)) -> dict[str, Any]:
    require_github(state)
    ok = 0
    errors: list[str] = []
    with state.lock:
        for program in state.programs:
            try:
                sync.save_program(client, program)
                ok += 1
            except GitHubError as err:
                logger.error("Error syncing program %s: %s", program.get("name"), err)
                errors.append(f"{program.get('name')}: {err}")
    return {"ok": not errors, "synced": ok, "failed": len(errors), "errors": errors}


@app.post("/workout/start")
def start_workout(payload: dict[str, Any] = Body(...), state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    program_id = str(payload.get("program_id", "")).strip()
    with state.lock:
        idx = find_or_404(state.programs, program_id, "Program")
        state.set_active_program(program_id)
        state.current_workout = workout_from_program(state.programs[idx])
        state.timer.reset()
        return state.current_workout


@app.get("/workout")
def get_current_workout(state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    return {"workout": state.current_workout, "timer": state.timer.to_dict()}


@app.put("/workout/sets")
def update_set(payload: dict[str, Any] = Body(...), state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    field = str(payload.get("field", ""))
    if field not in SET_FIELDS:
        raise HTTPException(status_code=400, detail=f"field must be one of {sorted(SET_FIELDS)}.")
    with state.lock:
        workout = require_workout(state)
        try:
            exercise_index = int(payload.get("exercise_index"))
            set_index = int(payload.get("set_index"))
            if exercise_index < 0 or set_index < 0:
                raise IndexError(exercise_index, set_index)
            exercise = workout["exercises"][exercise_index]
            target = exercise["sets"][set_index]
        except (TypeError, ValueError, IndexError, KeyError) as err:
            raise HTTPException(status_code=404, detail="Set not found.") from err
        value = payload.get("value")
        target[field] = bool(value) if field == "completed" else ("" if value is None else value)
        return target


@app.put("/workout/notes")
def update_workout_notes(payload: dict[str, Any] = Body(...), state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    with state.lock:
        workout = require_workout(state)
        if "exercise_index" in payload:
            try:
                workout["exercises"][int(payload["exercise_index"])]["notes"] = str(payload.get("notes") or "")
            except (TypeError, ValueError, IndexError) as err:
                raise HTTPException(status_code=404, detail="Exercise not found.") from err
        else:
            workout["sessionNotes"] = str(payload.get("notes") or "")
        return workout


@app.post("/workout/timer/{action}")
def timer_action(action: str, state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    actions = {
        "start": state.timer.start,
        "pause": state.timer.pause,
        "reset": state.timer.reset,
        "tick": state.timer.tick,
    }
    if action not in actions:
        raise HTTPException(status_code=404, detail="Unknown timer action.")
    with state.lock:
        actions[action]()
        return state.timer.to_dict()


@app.post("/workout/videos")
async def upload_workout_video(
    request: Request,
    filename: str = Query(...),
    content_type: str = Query(default="video/mp4"),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    name = check_extension(filename, VIDEO_EXTENSIONS)
    require_workout(state)
    require_github(state)
    content = await request.body()
    if not content:
        raise HTTPException(status_code=400, detail="Empty upload.")
    try:
        url = sync.upload_video(client, name, content)
    except GitHubError as err:
        raise github_http_error(err) from err
    video = picture_ref(name, len(content), content_type, url)
    with state.lock:
        workout = require_workout(state)
        workout.setdefault("videos", []).append(video)
    return video


@app.post("/workout/save")
def save_workout(state: AppState = Depends(get_app_state), client: GitHubClient = Depends(get_client)) -> dict[str, Any]:
    with state.lock:
        workout = require_workout(state)
        state.timer.pause()
        workout["completed"] = utc_now_iso()
        workout["duration"] = state.timer.current_seconds()
        state.workout_history.append(workout)
        program_idx = index_of(state.programs, str(workout.get("programId")))
        program = None
        if program_idx >= 0:
            program = state.programs[program_idx]
            program["lastUsed"] = workout["completed"]

        def write(c: GitHubClient) -> None:
            sync.save_workout_history(c, state)
            if program:
                sync.save_program(c, program)

        sync.cache_workouts(state)
        sync.cache_programs(state)
        status = sync.push(state, client, write, "workout")
        state.end_workout()
        update_analytics(state)
    return {"workout": workout, **status}


@app.delete("/workout")
def discard_workout(state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    with state.lock:
        state.end_workout()
    return {"ok": True}


@app.get("/workouts")
def get_workouts(search: str = Query(default=""), state: AppState = Depends(get_app_state)) -> list[dict[str, Any]]:
    return search_workouts(state.workout_history, search)


@app.delete("/workouts")
def clear_workouts(state: AppState = Depends(get_app_state), client: GitHubClient = Depends(get_client)) -> dict[str, Any]:
    with state.lock:
        cleared = len(state.workout_history)
        state.workout_history = []
        state.editing.workout = None
        sync.cache_workouts(state)
        status = sync.push(state, client, lambda c: sync.save_workout_history(c, state), "cleared workout history")
        update_analytics(state)
    logger.info("Cleared %d workouts", cleared)
    return {"ok": True, "cleared": cleared, **status}


@app.post("/workouts/{workout_id}/edit")
def edit_workout(workout_id: str, state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.workout_history, workout_id, "Workout")
        state.editing.workout = workout_id
        return state.workout_history[idx]


@app.put("/workouts/{workout_id}")
def save_workout_edit(
    workout_id: str,
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.workout_history, workout_id, "Workout")
        updated = normalize_workout_edit(state.workout_history[idx], payload)
        state.workout_history[idx] = updated
        state.editing.workout = None
        sync.cache_workouts(state)
        status = sync.push(state, client, lambda c: sync.save_workout_history(c, state), "workout edit")
        update_analytics(state)
    return {"workout": updated, **status}


@app.delete("/workouts/{workout_id}")
def delete_workout(
    workout_id: str,
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.workout_history, workout_id, "Workout")
        state.workout_history.pop(idx)
        if state.editing.workout == workout_id:
            state.editing.workout = None
        sync.cache_workouts(state)
        status = sync.push(state, client, lambda c: sync.save_workout_history(c, state), "workout deletion")
        update_analytics(state)
    return {"ok": True, **status}


@app.get("/measurements")
def get_measurements(state: AppState = Depends(get_app_state)) -> list[dict[str, Any]]:
    return state.measurements


@app.post("/measurements")
def create_measurement(
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    measurement = normalize_measurement(payload)
    with state.lock:
        state.measurements.append(measurement)
        state.measurements = sort_by(state.measurements, "date")
        sync.cache_measurements(state)
        status = sync.push(state, client, lambda c: sync.save_measurement(c, measurement), "measurement")
        update_analytics(state)
    return {"measurement": measurement, **status}


@app.post("/measurements/{measurement_id}/edit")
def edit_measurement(measurement_id: str, state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.measurements, measurement_id, "Measurement")
        state.editing.measurement = measurement_id
        return state.measurements[idx]


@app.put("/measurements/{measurement_id}")
def update_measurement(
    measurement_id: str,
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.measurements, measurement_id, "Measurement")
        existing = state.measurements[idx]
        measurement = normalize_measurement({**existing, **payload}, existing=existing)
        state.measurements[idx] = measurement
        state.measurements = sort_by(state.measurements, "date")
        state.editing.measurement = None

        def write(c: GitHubClient) -> None:
            # the file name embeds the date
            if existing.get("date") != measurement["date"]:
                sync.delete_measurement(c, existing)
            sync.save_measurement(c, measurement)

        sync.cache_measurements(state)
        status = sync.push(state, client, write, "measurement edit")
        update_analytics(state)
    return {"measurement": measurement, **status}


@app.delete("/measurements/{measurement_id}")
def delete_measurement(
    measurement_id: str,
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.measurements, measurement_id, "Measurement")
        measurement = state.measurements.pop(idx)
        if state.editing.measurement == measurement_id:
            state.editing.measurement = None
        sync.cache_measurements(state)
        status = sync.push(state, client, lambda c: sync.delete_measurement(c, measurement), "measurement deletion")
        update_analytics(state)
    return {"ok": True, **status}


@app.get("/progress-pictures")
def get_progress_pictures(state: AppState = Depends(get_app_state)) -> list[dict[str, Any]]:
    return state.progress_pictures


@app.post("/progress-pictures/upload")
async def upload_progress_picture(
    request: Request,
    filename: str = Query(...),
    content_type: str = Query(default="image/jpeg"),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    name = check_extension(filename, IMAGE_EXTENSIONS)
    require_github(state)
    content = await request.body()
    if not content:
        raise HTTPException(status_code=400, detail="Empty upload.")
    try:
        url = sync.upload_picture(client, name, content)
    except GitHubError as err:
        raise github_http_error(err) from err
    return picture_ref(name, len(content), content_type, url)


def _picture_refs(payload: dict[str, Any]) -> list[dict[str, Any]]:
    raw = payload.get("pictures", [])
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail="pictures must be a list.")
    refs = []
    for p in raw:
        if not isinstance(p, dict) or not str(p.get("name", "")).strip():
            raise HTTPException(status_code=400, detail="Each picture needs a name.")
        try:
            size = int(p.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        refs.append(picture_ref(str(p["name"]).strip(), size, str(p.get("type") or ""), p.get("githubUrl")))
    return refs


@app.post("/progress-pictures")
def create_progress_pictures(
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    entry = normalize_picture_entry(payload, _picture_refs(payload))
    with state.lock:
        state.progress_pictures.append(entry)
        state.progress_pictures = sort_by(state.progress_pictures, "date")
        sync.cache_pictures(state)
        status = sync.push(state, client, lambda c: sync.save_picture_entry(c, entry), "progress pictures")
    return {"entry": entry, **status}


@app.post("/progress-pictures/{entry_id}/edit")
def edit_progress_pictures(entry_id: str, state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.progress_pictures, entry_id, "Progress picture entry")
        state.editing.progress_picture = entry_id
        return state.progress_pictures[idx]


@app.put("/progress-pictures/{entry_id}")
def update_progress_pictures(
    entry_id: str,
    payload: dict[str, Any] = Body(...),
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.progress_pictures, entry_id, "Progress picture entry")
        existing = state.progress_pictures[idx]
        merged = {**existing, **payload}
        entry = normalize_picture_entry(merged, _picture_refs(merged), existing=existing)
        state.progress_pictures[idx] = entry
        state.progress_pictures = sort_by(state.progress_pictures, "date")
        state.editing.progress_picture = None

        def write(c: GitHubClient) -> None:
            if existing.get("date") != entry["date"]:
                sync.delete_picture_entry(c, existing)
            sync.save_picture_entry(c, entry)

        sync.cache_pictures(state)
        status = sync.push(state, client, write, "progress pictures edit")
    return {"entry": entry, **status}


@app.delete("/progress-pictures/{entry_id}")
def delete_progress_pictures(
    entry_id: str,
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.progress_pictures, entry_id, "Progress picture entry")
        entry = state.progress_pictures.pop(idx)
        if state.editing.progress_picture == entry_id:
            state.editing.progress_picture = None
        sync.cache_pictures(state)
        status = sync.push(state, client, lambda c: sync.delete_picture_entry(c, entry), "progress pictures deletion")
    return {"ok": True, **status}


@app.delete("/progress-pictures/{entry_id}/pictures/{picture_index}")
def delete_progress_picture(
    entry_id: str,
    picture_index: int,
    state: AppState = Depends(get_app_state),
    client: GitHubClient = Depends(get_client),
) -> dict[str, Any]:
    with state.lock:
        idx = find_or_404(state.progress_pictures, entry_id, "Progress picture entry")
        entry = state.progress_pictures[idx]
        pictures = entry.get("pictures", [])
        if picture_index < 0 or picture_index >= len(pictures):
            raise HTTPException(status_code=404, detail="Picture not found.")
        pictures.pop(picture_index)
        if not pictures:
            # an entry without pictures is removed entirely
            state.progress_pictures.pop(idx)
            sync.cache_pictures(state)
            status = sync.push(state, client, lambda c: sync.delete_picture_entry(c, entry), "progress pictures deletion")
            return {"ok": True, "entry": None, **status}
        sync.cache_pictures(state)
        status = sync.push(state, client, lambda c: sync.save_picture_entry(c, entry), "progress pictures")
    return {"ok": True, "entry": entry, **status}


@app.get("/analytics")
def get_analytics(search: str = Query(default=""), state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    with state.lock:
        update_analytics(state, search=search)
        return state.analytics


@app.get("/export")
def export_data(state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    config = state.remote_config.to_dict()
    config["token"] = ""
    return {
        "programs": state.programs,
        "workoutHistory": state.workout_history,
        "measurements": state.measurements,
        "progressPictures": state.progress_pictures,
        "githubConfig": config,
        "exportDate": utc_now_iso(),
        "version": "1.0",
    }


@app.delete("/data")
def clear_all_data(state: AppState = Depends(get_app_state)) -> dict[str, bool]:
    with state.lock:
        state.clear_data()
        sync.cache_all(state)
        update_analytics(state)
    logger.info("Cleared all local data")
    return {"ok": True}


@app.post("/import")
def import_data(payload: dict[str, Any] = Body(...), state: AppState = Depends(get_app_state)) -> dict[str, Any]:
    fields = {
        "programs": "programs",
        "workoutHistory": "workout_history",
        "measurements": "measurements",
        "progressPictures": "progress_pictures",
    }
    staged: dict[str, list[dict[str, Any]]] = {}
    for key in fields:
        rows = payload.get(key)
        if rows is None:
            continue
        if not isinstance(rows, list):
            raise HTTPException(status_code=400, detail=f"{key} must be a list.")
        staged[key] = [r for r in rows if isinstance(r, dict)]
    imported = {key: len(rows) for key, rows in staged.items()}
    with state.lock:
        for key, rows in staged.items():
            setattr(state, fields[key], rows)
        # githubConfig is never imported
        sync.cache_all(state)
        update_analytics(state)
    logger.info("Imported data: %s", imported)
    return {"ok": True, "imported": imported}


@app.post("/sync")
def sync_all_data(state: AppState = Depends(get_app_state), client: GitHubClient = Depends(get_client)) -> dict[str, Any]:
    require_github(state)
    with state.lock:
        return sync.sync_all(state, client)
