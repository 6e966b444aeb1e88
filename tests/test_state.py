from training_logger.state import AppState, TimerState, format_duration


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(3725) == "01:02:05"
    assert format_duration(-4) == "00:00:00"


def test_timer_tick_and_reset():
    timer = TimerState()
    timer.tick()
    timer.tick()
    assert timer.display() == "00:00:02"
    timer.reset()
    assert timer.elapsed_seconds == 0
    assert timer.running is False


def test_timer_measures_wall_time(monkeypatch):
    clock = iter([100.0, 130.0, 130.0])
    timer = TimerState()
    monkeypatch.setattr(timer, "_now", lambda: next(clock))
    timer.start()
    assert timer.running
    assert timer.handle == 100.0
    assert timer.current_seconds() == 30
    timer.pause()
    assert timer.elapsed_seconds == 30
    assert timer.handle is None
    assert not timer.running


def test_start_twice_keeps_first_handle(monkeypatch):
    timer = TimerState()
    monkeypatch.setattr(timer, "_now", lambda: 5.0)
    timer.start()
    monkeypatch.setattr(timer, "_now", lambda: 9.0)
    timer.start()
    assert timer.handle == 5.0


def test_active_program_tracks_index():
    state = AppState(programs=[{"id": "a"}, {"id": "b"}])
    state.set_active_program("b")
    assert state.current_program_index == 1
    state.set_active_program("missing")
    assert state.current_program_index == -1


def test_end_workout_resets_session():
    state = AppState(programs=[{"id": "a"}])
    state.set_active_program("a")
    state.current_workout = {"id": "w"}
    state.timer.tick()
    state.end_workout()
    assert state.current_workout is None
    assert state.active_program_id is None
    assert state.timer.elapsed_seconds == 0


def test_tick_is_ignored_while_running(monkeypatch):
    timer = TimerState()
    monkeypatch.setattr(timer, "_now", lambda: 10.0)
    timer.start()
    timer.tick()
    monkeypatch.setattr(timer, "_now", lambda: 13.0)
    assert timer.current_seconds() == 3


def test_clear_data_keeps_config():
    state = AppState(programs=[{"id": "a"}], measurements=[{"id": "m"}])
    state.remote_config.username = "u"
    state.set_active_program("a")
    state.editing.measurement = "m"
    state.clear_data()
    assert state.programs == [] and state.measurements == []
    assert state.current_program_index == -1
    assert state.editing.measurement is None
    assert state.remote_config.username == "u"
