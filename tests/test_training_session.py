import random
import threading

import pytest

from cue_trainer.ct_models import SessionConfig, SessionPhase, TrainableItem
from cue_trainer.training_session import TrainingSession, start_session


class Recorder:
    def __init__(self):
        self.calls = []

    def cue(self, item):
        self.calls.append(('cue', item.item_id))

    def tick(self, elapsed, phase):
        self.calls.append(('tick', elapsed, phase))

    def completed(self):
        self.calls.append(('completed',))

    def terminated(self):
        self.calls.append(('terminated',))

    def of(self, kind):
        return [c for c in self.calls if c[0] == kind]

    def callbacks(self):
        return dict(on_cue_play=self.cue, on_tick=self.tick,
                    on_completed=self.completed, on_terminated=self.terminated)


SHOT = TrainableItem('shot', 'Jump shot', 2, 'shot.mp3')
PIVOT = TrainableItem('pivot', 'Pivot', 1, 'pivot.mp3')
FIXED = SessionConfig(duration_seconds=10, min_break_seconds=3, max_break_seconds=3)


@pytest.fixture
def recorder():
    return Recorder()


def make_session(clock, recorder, items=(SHOT, PIVOT), config=FIXED, **kwargs):
    return start_session(list(items), config, random_source=random.Random(5), run_timer=False,
                         clock=clock, **recorder.callbacks(), **kwargs)


def drive(session, clock, seconds, step=0.25):
    for _ in range(int(seconds / step)):
        clock.advance(step)
        session.tick()


def test_full_session_plays_every_cue_then_completes(clock, recorder):
    session = make_session(clock, recorder)
    assert session.phase is SessionPhase.RUNNING
    assert [e.offset_seconds for e in session.schedule] == [3.0, 6.0, 9.0]

    drive(session, clock, 10)

    assert sorted(c[1] for c in recorder.of('cue')) == ['pivot', 'shot', 'shot']
    assert session.completion_tally == {'shot': 2, 'pivot': 1}
    assert session.phase is SessionPhase.COMPLETED
    assert recorder.of('completed') == [('completed',)]
    assert recorder.of('terminated') == []


def test_cue_follows_its_tick(clock, recorder):
    session = make_session(clock, recorder)
    clock.advance(3.0)
    session.tick()

    assert recorder.calls[0] == ('tick', 3, SessionPhase.RUNNING)
    assert recorder.calls[1][0] == 'cue'


def test_completion_auto_terminates_after_grace(clock, recorder):
    session = make_session(clock, recorder, grace_seconds=3.0)
    drive(session, clock, 10)
    assert session.phase is SessionPhase.COMPLETED

    drive(session, clock, 2.75)
    assert session.phase is SessionPhase.COMPLETED

    drive(session, clock, 0.25)
    assert session.is_finished
    assert recorder.of('terminated') == [('terminated',)]

    session.end()
    assert recorder.of('terminated') == [('terminated',)]


def test_end_twice_terminates_once(clock, recorder):
    session = make_session(clock, recorder)
    drive(session, clock, 1)

    session.end()
    session.end()

    assert session.phase is SessionPhase.TERMINATED
    assert recorder.of('terminated') == [('terminated',)]


def test_end_after_completion_terminates_once(clock, recorder):
    session = make_session(clock, recorder)
    drive(session, clock, 10)

    session.end()
    drive(session, clock, 5)

    assert recorder.of('terminated') == [('terminated',)]


def test_no_cue_after_end(clock, recorder):
    session = make_session(clock, recorder)
    drive(session, clock, 2)
    session.end()
    drive(session, clock, 10)

    assert recorder.of('cue') == []
    assert session.elapsed_seconds == 2


def test_end_from_callback_suppresses_rest_of_batch(clock):
    played = []
    session = None

    def on_cue(item):
        played.append(item.item_id)
        session.end()

    burst = SessionConfig(duration_seconds=30, min_break_seconds=0, max_break_seconds=0.1)
    session = start_session([SHOT, PIVOT], burst, random_source=random.Random(1), run_timer=False,
                            clock=clock, on_cue_play=on_cue)
    clock.advance(5)
    session.tick()

    assert len(played) == 1
    assert session.phase is SessionPhase.TERMINATED
    # Only the cue that actually played is counted
    assert session.completion_tally == {played[0]: 1}
    assert session.snapshot()['cursor'] == 1


def test_pause_from_callback_holds_rest_of_batch(clock):
    played = []
    session = None

    def on_cue(item):
        played.append((item.item_id, session.phase))
        if len(played) == 1:
            session.pause()

    burst = SessionConfig(duration_seconds=30, min_break_seconds=0, max_break_seconds=0.1)
    session = start_session([SHOT, PIVOT], burst, random_source=random.Random(1), run_timer=False,
                            clock=clock, on_cue_play=on_cue)
    clock.advance(5)
    session.tick()

    assert len(played) == 1
    assert session.phase is SessionPhase.PAUSED
    assert sum(session.completion_tally.values()) == 1

    clock.advance(2)
    session.tick()
    assert len(played) == 1

    session.resume()
    clock.advance(0.25)
    session.tick()

    # Held cues fire after resume, in schedule order, never while paused
    assert [item_id for item_id, _ in played] == [e.item_id for e in session.schedule]
    assert all(phase is SessionPhase.RUNNING for _, phase in played)
    assert session.completion_tally == {'shot': 2, 'pivot': 1}


def test_pause_and_resume_shift_cues(clock, recorder):
    item = TrainableItem('shot', 'Jump shot', 1, 'shot.mp3')
    config = SessionConfig(duration_seconds=10, min_break_seconds=4, max_break_seconds=4)
    session = make_session(clock, recorder, items=[item], config=config)
    started = clock.now

    drive(session, clock, 2)
    session.pause()
    assert session.phase is SessionPhase.PAUSED
    drive(session, clock, 5)
    session.resume()

    fired_at = None
    for _ in range(20):
        clock.advance(0.25)
        session.tick()
        if recorder.of('cue'):
            fired_at = clock.now
            break

    assert fired_at == started + 4 + 5


def test_controls_in_wrong_phase_are_ignored(clock, recorder):
    session = TrainingSession([SHOT], FIXED, clock=clock, **recorder.callbacks())
    session.pause()
    session.resume()
    session.end()
    assert session.phase is SessionPhase.IDLE
    assert recorder.calls == []

    session.start(run_timer=False)
    session.resume()
    assert session.phase is SessionPhase.RUNNING


def test_failing_playback_does_not_stop_the_clock(clock):
    def broken(item):
        raise RuntimeError("audio device busy")

    session = start_session([SHOT, PIVOT], FIXED, random_source=random.Random(5), run_timer=False,
                            clock=clock, on_cue_play=broken)
    drive(session, clock, 10)

    assert session.completion_tally == {'shot': 2, 'pivot': 1}
    assert session.phase is SessionPhase.COMPLETED


def test_empty_session_runs_full_duration(clock, recorder):
    session = make_session(clock, recorder, items=[])
    drive(session, clock, 9.75)
    assert session.phase is SessionPhase.RUNNING

    drive(session, clock, 0.25)
    assert session.phase is SessionPhase.COMPLETED
    assert session.completion_tally == {}


def test_snapshot(clock, recorder):
    session = make_session(clock, recorder)
    drive(session, clock, 4)

    snap = session.snapshot()
    assert snap['phase'] == 'running'
    assert snap['elapsed_seconds'] == 4
    assert snap['progress_percent'] == 40.0
    assert snap['cursor'] == 1
    assert snap['scheduled_cues'] == 3
    assert snap['next_cue_in'] == 2.0


def test_timer_thread_drives_session(clock):
    played = []
    both_played = threading.Event()
    completed = threading.Event()
    terminated = threading.Event()

    def on_cue(item):
        played.append(item.item_id)
        if len(played) == 2:
            both_played.set()

    session = start_session([SHOT], FIXED, random_source=random.Random(5), clock=clock,
                            tick_interval=0.005, grace_seconds=3.0, on_cue_play=on_cue,
                            on_completed=completed.set, on_terminated=terminated.set)

    clock.advance(7)
    assert both_played.wait(2.0)
    clock.advance(3)
    assert completed.wait(2.0)
    clock.advance(3)
    assert terminated.wait(2.0)

    session.timer_thread.join(2.0)
    assert not session.timer_thread.is_alive()
    assert session.completion_tally == {'shot': 2}
