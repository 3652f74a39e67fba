import threading
import time
import unittest

from serialcli.protocol import DeviceChannel, GrowthStabilizedStrategy, ResponseSynchronizer
from serialcli.shell import CommandTable, Dispatcher, OutputSink, build_default_table
from serialcli.shell.handlers import format_payload
from serialcli.transport import MemoryTransport
from serialcli.utils.exceptions import ShellExit


class TricklingTransport(MemoryTransport):
    """Writes one byte at a time into a shared stream, slowly."""

    def __init__(self):
        super().__init__(port="trickle")
        self.stream = bytearray()

    def write(self, data: bytes) -> int:
        for b in data:
            self.stream.append(b)
            time.sleep(0.001)
        return len(data)


def answer_analog(data: bytes):
    if data.startswith(b"0 "):
        return b"A" + data[2:] + b"=517\r\n"
    return None


def make_dispatcher(transport=None, table=None, **kwargs):
    transport = transport or MemoryTransport()
    channel = DeviceChannel(transport)
    synchronizer = ResponseSynchronizer(channel, GrowthStabilizedStrategy(poll_interval=0.001))
    sink = OutputSink()
    if table is None:
        table = build_default_table()
    dispatcher = Dispatcher(table.freeze(), channel, synchronizer, sink, **kwargs)
    return dispatcher, transport, sink


class TestParse(unittest.TestCase):
    def test_name_and_args(self):
        self.assertEqual(Dispatcher.parse("write-digital 1 3\n"), ("write-digital", ["1", "3"]))

    def test_name_only(self):
        self.assertEqual(Dispatcher.parse("exit"), ("exit", []))

    def test_crlf_is_stripped(self):
        self.assertEqual(Dispatcher.parse("read-analog 2\r\n"), ("read-analog", ["2"]))

    def test_single_space_delimiter_keeps_empty_tokens(self):
        self.assertEqual(Dispatcher.parse("chdev  COM4"), ("chdev", ["", "COM4"]))

    def test_format_payload(self):
        self.assertEqual(format_payload("write-analog", ["5", "128"]), "2 5 128")
        self.assertEqual(format_payload("read-digital", ["4"]), "1 4")


class TestDispatch(unittest.TestCase):
    def test_write_digital_sends_coded_payload(self):
        dispatcher, transport, sink = make_dispatcher(sync=True)

        dispatcher.dispatch("write-digital 1 3")

        self.assertEqual(transport.written, [b"3 1 3"])
        self.assertEqual(sink.snapshot(), [])

    def test_read_analog_publishes_reply(self):
        transport = MemoryTransport(responder=answer_analog)
        dispatcher, _, sink = make_dispatcher(transport, sync=True)

        dispatcher.dispatch("read-analog 2")

        self.assertEqual(transport.written, [b"0 2"])
        self.assertEqual(sink.texts(), ["A2=517\r\n"])

    def test_unknown_line_passes_through_verbatim(self):
        dispatcher, transport, _ = make_dispatcher(sync=True)

        dispatcher.dispatch("foo bar baz\n")
        dispatcher.dispatch("  status?  \n")

        self.assertEqual(transport.written, [b"foo bar baz", b"status?"])

    def test_builtin_name_never_passes_through(self):
        dispatcher, transport, _ = make_dispatcher(sync=True)

        dispatcher.dispatch("write-analog 5 128")

        self.assertNotIn(b"write-analog 5 128", transport.written)
        self.assertEqual(transport.written, [b"2 5 128"])

    def test_names_are_case_sensitive(self):
        dispatcher, transport, _ = make_dispatcher(sync=True)

        dispatcher.dispatch("WRITE-DIGITAL 1 1")

        self.assertEqual(transport.written, [b"WRITE-DIGITAL 1 1"])

    def test_blank_lines_are_ignored(self):
        dispatcher, transport, _ = make_dispatcher(sync=True)

        self.assertIsNone(dispatcher.dispatch("   \n"))
        self.assertEqual(transport.written, [])

    def test_terminator_appended_to_every_write(self):
        dispatcher, transport, _ = make_dispatcher(sync=True, terminator="\r\n")

        dispatcher.dispatch("write-digital 1 3")
        dispatcher.dispatch("foo")

        self.assertEqual(transport.written, [b"3 1 3\r\n", b"foo\r\n"])

    def test_write_failure_is_reported(self):
        transport = MemoryTransport()
        transport.close()
        dispatcher, _, sink = make_dispatcher(transport, sync=True)

        dispatcher.dispatch("write-digital 1 1")
        dispatcher.dispatch("raw text")

        errors = sink.texts("error")
        self.assertEqual(len(errors), 2)
        self.assertTrue(all(e.startswith("Command error:") for e in errors))

    def test_exit_raises(self):
        dispatcher, _, _ = make_dispatcher()
        with self.assertRaises(ShellExit):
            dispatcher.dispatch("exit")

    def test_handler_exception_is_reported(self):
        table = CommandTable()

        def boom(args, ctx):
            raise RuntimeError("kaput")

        table.register("boom", boom)
        dispatcher, _, sink = make_dispatcher(table=table, sync=True)

        dispatcher.dispatch("boom")

        self.assertEqual(sink.texts("error"), ["Command boom failed: kaput"])


class TestAsyncDispatch(unittest.TestCase):
    def test_builtin_runs_on_worker(self):
        transport = MemoryTransport(responder=answer_analog)
        dispatcher, _, sink = make_dispatcher(transport, workers=2)
        try:
            future = dispatcher.dispatch("read-analog 7")
            self.assertIsNotNone(future)
            future.result(timeout=2.0)
        finally:
            dispatcher.shutdown()

        self.assertEqual(sink.texts(), ["A7=517\r\n"])
        self.assertEqual(dispatcher.pending, 0)

    def test_concurrent_builtins_write_atomically(self):
        transport = TricklingTransport()
        dispatcher, _, sink = make_dispatcher(transport, workers=2)
        try:
            futures = [
                dispatcher.dispatch("write-digital 11111 1"),
                dispatcher.dispatch("write-analog 22222 512"),
            ]
            self.assertTrue(all(f is not None for f in futures))
            for future in futures:
                future.result(timeout=2.0)
        finally:
            dispatcher.shutdown()

        self.assertEqual(sink.texts("error"), [])
        self.assertIn(bytes(transport.stream), (
            b"3 11111 1" + b"2 22222 512",
            b"2 22222 512" + b"3 11111 1",
        ))

    def test_concurrent_passthrough_lines_do_not_interleave(self):
        transport = TricklingTransport()
        dispatcher, _, _ = make_dispatcher(transport, workers=2)
        start = threading.Barrier(2)

        def send(line):
            start.wait()
            dispatcher.dispatch(line)

        threads = [threading.Thread(target=send, args=(line,)) for line in ("aaaaaaaa", "bbbbbbbb")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(2.0)
        dispatcher.shutdown()

        self.assertIn(bytes(transport.stream), (b"aaaaaaaabbbbbbbb", b"bbbbbbbbaaaaaaaa"))

    def test_saturated_pool_rejects(self):
        release = threading.Event()
        started = threading.Event()
        table = CommandTable()

        def slow(args, ctx):
            started.set()
            release.wait(2.0)

        table.register("slow", slow)
        dispatcher, _, sink = make_dispatcher(table=table, workers=1, max_pending=1)
        try:
            first = dispatcher.dispatch("slow")
            self.assertTrue(started.wait(1.0))
            self.assertIsNone(dispatcher.dispatch("slow"))

            errors = sink.texts("error")
            self.assertEqual(len(errors), 1)
            self.assertIn("dropped", errors[0])

            release.set()
            first.result(timeout=2.0)
        finally:
            release.set()
            dispatcher.shutdown()

        # the slot is free again
        self.assertEqual(dispatcher.pending, 0)


if __name__ == "__main__":
    unittest.main()
