import asyncio

from conftest import (
    FakeEngine,
    FakeSentiment,
    FakeSummarizer,
    amplitude_text,
    frame_amplitude,
    make_manager,
    silent_frame,
    speech_frame,
    utterance_frames,
)
from meeting_copilot.events import SESSION_CLOSED, SESSION_ENDING, SESSION_STARTED, UTTERANCE_READY
from meeting_copilot.session_manager import SessionState


class EventLog:
    def __init__(self) -> None:
        self.events = []

    async def __call__(self, event) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.events]


def _feed(manager, frames) -> None:
    for frame in frames:
        manager.feed(frame)


def test_transcript_order_follows_segmentation_not_completion(tmp_path):
    sentiment = FakeSentiment(delays={"first": 0.2})
    manager = make_manager(tmp_path, sentiment=sentiment)
    log = EventLog()
    manager.subscribe(log)

    async def scenario():
        await manager.start()
        _feed(manager, utterance_frames(2000))
        await asyncio.sleep(0)
        _feed(manager, utterance_frames(3000))
        await asyncio.sleep(0.4)
        return await manager.stop()

    record = asyncio.run(scenario())
    # the second utterance finished enrichment first...
    assert sentiment.completed == ["second", "first"]
    # ...but was appended second
    assert [i.text for i in record.insights] == ["first", "second"]
    assert record.transcript == "first second"
    ready = [e.payload["insight"]["text"] for e in log.events if e.type == UTTERANCE_READY]
    assert ready == ["first", "second"]


def test_start_twice_returns_same_session_and_keeps_transcript(tmp_path):
    manager = make_manager(tmp_path)

    async def scenario():
        first_id = await manager.start()
        _feed(manager, utterance_frames(2000))
        await asyncio.sleep(0.1)
        second_id = await manager.start()
        texts = [i.text for i in manager.transcript]
        await manager.stop()
        return first_id, second_id, texts

    first_id, second_id, texts = asyncio.run(scenario())
    assert first_id == second_id
    assert texts == ["first"]


def test_stop_when_idle_or_closed_is_silent_noop(tmp_path):
    manager = make_manager(tmp_path)
    log = EventLog()
    manager.subscribe(log)

    async def scenario():
        assert await manager.stop() is None
        assert log.events == []
        await manager.start()
        await manager.stop()
        seen = len(log.events)
        assert await manager.stop() is None
        return seen

    seen = asyncio.run(scenario())
    assert len(log.events) == seen
    assert manager.state is SessionState.CLOSED


def test_silence_ends_session_exactly_once(tmp_path):
    summarizer = FakeSummarizer()
    manager = make_manager(tmp_path, summarizer=summarizer, silence_threshold_sec=0.1)
    log = EventLog()
    manager.subscribe(log)

    async def scenario():
        await manager.start()
        for _ in range(40):
            manager.feed(silent_frame())
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.1)
        for _ in range(10):
            manager.feed(silent_frame())
            await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert log.types == [SESSION_STARTED, SESSION_ENDING, SESSION_CLOSED]
    assert log.events[1].payload["reason"] == "silence"
    record = log.events[2].payload["record"]
    assert record["end_reason"] == "silence"
    assert record["transcript"] == ""
    assert record["summary"] is None
    assert summarizer.calls == []
    assert manager.state is SessionState.CLOSED


def test_silence_flushes_buffered_speech(tmp_path):
    manager = make_manager(tmp_path, silence_threshold_sec=0.1)
    log = EventLog()
    manager.subscribe(log)

    async def scenario():
        await manager.start()
        _feed(manager, [speech_frame(3000)] * 10)  # no pause: still buffered
        await asyncio.sleep(0.4)

    asyncio.run(scenario())
    closed = [e for e in log.events if e.type == SESSION_CLOSED]
    assert len(closed) == 1
    assert closed[0].payload["record"]["transcript"] == "second"
    ending = [e for e in log.events if e.type == SESSION_ENDING][0]
    assert ending.payload["forced_flush"] is True


def test_stop_force_flushes_and_summarizes(tmp_path):
    summarizer = FakeSummarizer()
    manager = make_manager(tmp_path, summarizer=summarizer)

    async def scenario():
        await manager.start()
        _feed(manager, utterance_frames(2000))
        _feed(manager, [speech_frame(4000)] * 10)
        return await manager.stop()

    record = asyncio.run(scenario())
    assert [i.text for i in record.insights] == ["first", "third"]
    assert summarizer.calls == ["first third"]
    assert record.summary.summary == "summary of 2 words"
    assert record.end_reason == "stop"
    assert record.notes == []
    assert manager.store.get_session(record.session_id) is record


def test_forced_flush_timeout_drops_and_notes(tmp_path):
    engine = FakeEngine(text="never arrives", delay=5.0)
    manager = make_manager(tmp_path, engine=engine, forced_flush_timeout=0.1)

    async def scenario():
        await manager.start()
        _feed(manager, [speech_frame(3000)] * 10)
        return await manager.stop()

    record = asyncio.run(scenario())
    assert record.notes == ["dropped 1 incomplete utterance(s)"]
    assert record.transcript == ""
    assert record.summary is None
    assert manager.state is SessionState.CLOSED


def test_forced_flush_timeout_keeps_utterances_finished_behind_a_stuck_one(tmp_path):
    summarizer = FakeSummarizer()
    engine = FakeEngine(
        text=amplitude_text,
        delay=lambda pcm: 5.0 if frame_amplitude(pcm) == 2000 else 0.0,
    )
    manager = make_manager(tmp_path, engine=engine, summarizer=summarizer, forced_flush_timeout=0.2)
    log = EventLog()
    manager.subscribe(log)

    async def scenario():
        await manager.start()
        _feed(manager, utterance_frames(2000))  # hangs in transcription
        _feed(manager, utterance_frames(3000))  # done at once, queued behind it
        await asyncio.sleep(0.05)
        return await manager.stop()

    record = asyncio.run(scenario())
    assert [i.text for i in record.insights] == ["second"]
    assert record.transcript == "second"
    assert record.notes == ["dropped 1 incomplete utterance(s)"]
    assert summarizer.calls == ["second"]
    ready = [e.payload["insight"]["text"] for e in log.events if e.type == UTTERANCE_READY]
    assert ready == ["second"]
    assert log.types[-1] == SESSION_CLOSED


def test_forced_flush_timeout_does_not_count_gate_rejections(tmp_path):
    engine = FakeEngine(text="never arrives", delay=5.0)
    manager = make_manager(tmp_path, engine=engine, forced_flush_timeout=0.2)

    async def scenario():
        await manager.start()
        _feed(manager, utterance_frames(3000))  # admitted, hangs
        _feed(manager, utterance_frames(2000, speech_frames=2))  # 40 ms, rejected by the gate
        await asyncio.sleep(0.05)
        return await manager.stop()

    record = asyncio.run(scenario())
    assert record.notes == ["dropped 1 incomplete utterance(s)"]
    assert len(engine.calls) == 1
    assert record.insights == []


def test_gate_rejections_never_reach_transcript(tmp_path):
    engine = FakeEngine(text=amplitude_text)
    manager = make_manager(tmp_path, engine=engine)

    async def scenario():
        await manager.start()
        _feed(manager, utterance_frames(2000, speech_frames=2))  # 40 ms < 100 ms minimum
        await asyncio.sleep(0.05)
        return await manager.stop()

    record = asyncio.run(scenario())
    assert engine.calls == []
    assert record.insights == []


def test_new_session_after_close_clears_transcript(tmp_path):
    manager = make_manager(tmp_path)
    log = EventLog()
    manager.subscribe(log)

    async def scenario():
        first = await manager.start()
        _feed(manager, utterance_frames(2000))
        await asyncio.sleep(0.1)
        await manager.stop()
        second = await manager.start()
        snapshot = manager.snapshot()
        await manager.teardown()
        return first, second, snapshot

    first, second, snapshot = asyncio.run(scenario())
    assert first != second
    assert snapshot["state"] == "recording"
    assert snapshot["session_id"] == second
    assert snapshot["transcript"] == ""
    assert log.types == [
        SESSION_STARTED,
        UTTERANCE_READY,
        SESSION_ENDING,
        SESSION_CLOSED,
        SESSION_STARTED,
        SESSION_ENDING,
        SESSION_CLOSED,
    ]
    assert log.events[-1].payload["record"]["end_reason"] == "shutdown"
    assert [r.session_id for r in manager.store.list_sessions()] == [second, first]


def test_frames_outside_recording_are_ignored(tmp_path):
    engine = FakeEngine(text=amplitude_text)
    manager = make_manager(tmp_path, engine=engine)

    async def scenario():
        _feed(manager, utterance_frames(2000))
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert engine.calls == []
    assert manager.state is SessionState.IDLE


def test_stop_during_ending_returns_same_record(tmp_path):
    engine = FakeEngine(text="late", delay=0.1)
    manager = make_manager(tmp_path, engine=engine)

    async def scenario():
        await manager.start()
        _feed(manager, [speech_frame(3000)] * 10)
        first, second = await asyncio.gather(manager.stop(), manager.stop())
        return first, second

    first, second = asyncio.run(scenario())
    assert first is second
    assert first.transcript == "late"


def test_start_during_ending_waits_for_close(tmp_path):
    engine = FakeEngine(text="late", delay=0.1)
    manager = make_manager(tmp_path, engine=engine)

    async def scenario():
        first = await manager.start()
        _feed(manager, [speech_frame(3000)] * 10)
        stopping = asyncio.create_task(manager.stop())
        await asyncio.sleep(0)
        assert manager.state is SessionState.ENDING
        second = await manager.start()
        record = await stopping
        await manager.teardown()
        return first, second, record

    first, second, record = asyncio.run(scenario())
    assert first != second
    assert record.session_id == first
    assert record.transcript == "late"


def test_failing_listener_does_not_break_pipeline(tmp_path):
    manager = make_manager(tmp_path)

    async def broken(event) -> None:
        raise RuntimeError("socket gone")

    manager.subscribe(broken)

    async def scenario():
        await manager.start()
        _feed(manager, utterance_frames(2000))
        return await manager.stop()

    record = asyncio.run(scenario())
    assert record.transcript == "first"
