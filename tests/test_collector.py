import asyncio
import time

import pytest

from catalog_probe.classifiers.base import OutcomeKind
from catalog_probe.engines.base import Outcome
from catalog_probe.engines.collector import ResultCollector
from catalog_probe.errors import IncompleteResultError, OutputError
from catalog_probe.export.formatting import bulk_line
from catalog_probe.export.sinks import LineFileSink, MemorySink


def _found(code):
    return Outcome(code=code, kind=OutcomeKind.SINGLE, detail="Single product found in iframe", count=1, found=True)


async def _stream(pairs):
    for pair in pairs:
        await asyncio.sleep(0)
        yield pair


def test_reorders_to_submission_order_and_tallies():
    codes = ["a", "b", "c", "d"]
    arrivals = [
        (2, _found("c")),
        (0, Outcome.error("a", "timeout")),
        (3, Outcome(code="d", kind=OutcomeKind.NO_MATCH)),
        (1, _found("b")),
    ]
    sink = MemorySink()
    result = asyncio.run(ResultCollector(codes, sink).consume(_stream(arrivals)))

    assert [o.code for o in result.outcomes] == codes
    assert result.tally[OutcomeKind.SINGLE] == 2
    assert result.tally[OutcomeKind.ERROR] == 1
    assert result.tally[OutcomeKind.NO_MATCH] == 1
    assert result.tally[OutcomeKind.MULTIPLE] == 0
    # Sink saw completion order.
    assert sink.lines == ["c: FOUND", "a: ERROR - timeout", "d: NOT FOUND", "b: FOUND"]


def test_each_outcome_is_persisted_before_the_next_arrives(tmp_path):
    path = tmp_path / "results.txt"
    codes = ["a", "b", "c"]
    seen_on_disk = []

    async def _observed():
        for index, code in enumerate(codes):
            yield index, _found(code)
            seen_on_disk.append(path.read_text(encoding="utf-8").splitlines())

    with LineFileSink(str(path), bulk_line, fsync=False) as sink:
        asyncio.run(ResultCollector(codes, sink).consume(_observed()))

    assert seen_on_disk == [["a: FOUND"], ["a: FOUND", "b: FOUND"], ["a: FOUND", "b: FOUND", "c: FOUND"]]


def test_duplicate_index_is_rejected():
    collector = ResultCollector(["a"], MemorySink())
    collector.record(0, _found("a"))
    with pytest.raises(ValueError):
        collector.record(0, _found("a"))


def test_finalize_requires_every_slot():
    collector = ResultCollector(["a", "b", "c"], MemorySink())
    collector.record(1, _found("b"))
    with pytest.raises(IncompleteResultError) as info:
        collector.finalize()
    assert info.value.missing == [0, 2]


def test_partial_fills_missing_slots_with_errors():
    collector = ResultCollector(["a", "b"], MemorySink())
    collector.record(1, _found("b"))
    result = collector.partial("Interrupted")

    assert result.interrupted
    assert result.total == 2
    assert result.outcomes[0].kind is OutcomeKind.ERROR
    assert result.outcomes[0].detail == "Interrupted"
    assert result.outcomes[1].found


def test_unwritable_sink_raises_output_error():
    class BrokenSink(MemorySink):
        def write(self, outcome):
            raise OSError(28, "No space left on device")

    collector = ResultCollector(["a"], BrokenSink())
    with pytest.raises(OutputError):
        collector.record(0, _found("a"))
    # The outcome is still held in memory for the partial summary.
    assert collector.completed == 1


def test_slow_sink_writes_do_not_block_the_event_loop():
    class SlowSink(MemorySink):
        def write(self, outcome):
            time.sleep(0.2)
            super().write(outcome)

    sink = SlowSink()
    collector = ResultCollector(["a"], sink)

    async def _run():
        ticks = 0
        stop = asyncio.Event()

        async def _ticker():
            nonlocal ticks
            while not stop.is_set():
                ticks += 1
                await asyncio.sleep(0.01)

        ticker = asyncio.create_task(_ticker())
        await asyncio.sleep(0)
        result = await collector.consume(_stream([(0, _found("a"))]))
        stop.set()
        await ticker
        return result, ticks

    result, ticks = asyncio.run(_run())
    assert result.total == 1
    assert sink.lines == ["a: FOUND"]
    # The loop kept running other tasks while the write was in progress.
    assert ticks >= 5


def test_async_record_maps_sink_failure_to_output_error():
    class BrokenSink(MemorySink):
        def write(self, outcome):
            raise OSError(5, "Input/output error")

    collector = ResultCollector(["a"], BrokenSink())
    with pytest.raises(OutputError):
        asyncio.run(collector.record_async(0, _found("a")))
    assert collector.completed == 1
