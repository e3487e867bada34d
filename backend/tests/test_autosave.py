from funnel_builder.editor.autosave import AutoSaver
from funnel_builder.editor.session import EditorSession


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make(clock, persist):
    session = EditorSession(clock=clock)
    return session, AutoSaver(session, persist, interval=30, idle_delay=3, clock=clock)


def test_saves_after_idle_delay():
    clock = FakeClock()
    saved = []
    session, saver = make(clock, saved.append)

    session.update_name("Draft")
    saver.touch()

    clock.now = 2
    assert saver.tick() is False

    clock.now = 3
    assert saver.tick() is True
    assert len(saved) == 1
    assert session.is_dirty is False


def test_periodic_save_without_touch():
    clock = FakeClock()
    saved = []
    session, saver = make(clock, saved.append)
    session.update_name("Draft")

    clock.now = 29
    assert saver.tick() is False
    clock.now = 30
    assert saver.tick() is True


def test_clean_documents_are_not_saved():
    clock = FakeClock()
    saved = []
    _, saver = make(clock, saved.append)

    clock.now = 100
    saver.touch()
    clock.now = 200
    assert saver.tick() is False
    assert saver.flush() is False
    assert saved == []


def test_failures_are_swallowed_and_retried():
    clock = FakeClock()
    attempts = []

    def flaky(payload):
        attempts.append(payload)
        if len(attempts) == 1:
            raise TimeoutError("server down")

    session, saver = make(clock, flaky)
    session.update_name("Draft")
    saver.touch()

    clock.now = 5
    assert saver.tick() is False
    assert session.is_dirty is True

    clock.now = 10
    assert saver.tick() is False  # no new edit, interval not reached

    clock.now = 35
    assert saver.tick() is True
    assert len(attempts) == 2


def test_disabled_saver_only_flushes():
    clock = FakeClock()
    saved = []
    session, saver = make(clock, saved.append)
    saver.enabled = False

    session.update_name("Draft")
    clock.now = 100
    assert saver.tick() is False
    assert saver.flush() is True
    assert len(saved) == 1
