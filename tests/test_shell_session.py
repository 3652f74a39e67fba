import threading
import time
import unittest

from serialcli import __version__
from serialcli.shell import CommandTable, OutputSink, SessionConfig, ShellSession
from serialcli.shell.handlers import show_help
from serialcli.transport import MemoryTransport
from serialcli.utils.exceptions import NoDeviceFoundError, ShellExit, TransportError


class UnpluggedTransport(MemoryTransport):
    def in_waiting(self) -> int:
        raise TransportError("Serial port disconnected (device removed or cable unplugged)")


class SlowBoard(MemoryTransport):
    """Answers "0 <pin>" with an analog reading, a little later."""

    def __init__(self, delay=0.05):
        super().__init__(port="COM3", responder=self._answer)
        self.delay = delay

    def _answer(self, data):
        if data.startswith(b"0 "):
            reply = b"A" + data[2:] + b"=517\r\n"
            timer = threading.Timer(self.delay, self.feed, args=(reply,))
            timer.daemon = True
            timer.start()
        return None


def refuse(port):
    raise TransportError(f"Failed to open serial port {port}: busy")


class TestShellSession(unittest.TestCase):
    def setUp(self):
        self.opened = []

    def _opener(self, port):
        self.opened.append(port)
        return MemoryTransport(port=port)

    def _session(self, ports=("COM3", "COM4"), selector=None, opener=None, **config):
        config.setdefault("sync", True)
        session = ShellSession(
            SessionConfig(**config),
            transport=MemoryTransport(port="COM3"),
            lister=lambda: list(ports),
            selector=selector,
            opener=opener or self._opener,
        )
        self.addCleanup(session.close)
        return session

    def test_banner_names_version_and_device(self):
        session = self._session()
        self.assertEqual(session.banner(), f"SerialCLI v{__version__}\nConnected to: COM3")

    def test_requires_a_port(self):
        with self.assertRaises(NoDeviceFoundError):
            ShellSession(SessionConfig())

    def test_chdev_with_explicit_port(self):
        session = self._session()

        session.dispatch("chdev COM9")

        self.assertEqual(self.opened, ["COM9"])
        self.assertEqual(session.channel.identity(), "COM9")
        self.assertEqual(session.sink.texts("status"), ["Connected to: COM9"])

    def test_chdev_asks_when_no_port_given(self):
        session = self._session(selector=lambda ports: ports[1])

        session.dispatch("chdev")

        self.assertEqual(session.channel.identity(), "COM4")

    def test_chdev_cancelled_keeps_device(self):
        session = self._session(selector=lambda ports: None)

        session.dispatch("chdev")

        self.assertEqual(session.channel.identity(), "COM3")
        self.assertEqual(session.sink.texts("status"), ["Device unchanged"])

    def test_chdev_open_failure_keeps_device(self):
        session = self._session(opener=refuse)

        session.dispatch("chdev COM9")

        self.assertEqual(session.channel.identity(), "COM3")
        self.assertTrue(session.sink.texts("error")[0].startswith("Error connecting:"))

    def test_lsdev_lists_ports(self):
        session = self._session()

        session.dispatch("lsdev")

        self.assertEqual(session.sink.texts("status"), ["Serial Ports found:\n1: COM3\n2: COM4"])

    def test_lsdev_without_ports(self):
        session = self._session(ports=())

        session.dispatch("lsdev")

        self.assertEqual(session.sink.texts("error"), ["No serial devices found"])

    def test_help_lists_commands(self):
        session = self._session()

        session.dispatch("help")

        text = session.sink.texts("status")[0]
        for name in session.table.names():
            self.assertIn(name, text)

    def test_exit(self):
        session = self._session()
        with self.assertRaises(ShellExit) as cm:
            session.dispatch("exit")
        self.assertEqual(cm.exception.code, 0)

    def test_duplicate_names_are_warned_about(self):
        table = CommandTable()
        table.register("help", show_help, inline=True)
        table.register("help", show_help, inline=True)

        session = ShellSession(SessionConfig(sync=True), transport=MemoryTransport(), table=table)
        self.addCleanup(session.close)

        self.assertEqual(len(session.sink.texts("status")), 1)
        self.assertIn("'help'", session.sink.texts("status")[0])

    def test_fatal_read_error_finishes_session(self):
        session = ShellSession(
            SessionConfig(fatal_on_read_error=True, poll_interval=0.005),
            transport=UnpluggedTransport(port="COM3"),
        )
        self.addCleanup(session.close)
        session.start()

        deadline = time.monotonic() + 2.0
        while not session.finished and time.monotonic() < deadline:
            time.sleep(0.01)

        self.assertTrue(session.finished)
        self.assertEqual(session.exit_code, 1)

    def test_mock_device_round_trip(self):
        session = ShellSession(SessionConfig(port="mock://", sync=True, poll_interval=0.001))
        self.addCleanup(session.close)

        session.dispatch("write-digital 4 1")
        session.dispatch("read-digital 4")

        self.assertEqual(session.sink.texts(), ["D4=1\r\n"])


if __name__ == "__main__":
    unittest.main()


class TestReadsWithListener(unittest.TestCase):
    def _session(self, transport, **config):
        config.setdefault("poll_interval", 0.001)
        session = ShellSession(SessionConfig(**config), transport=transport)
        self.addCleanup(session.close)
        session.start()
        return session

    def test_reply_goes_to_the_command_and_frees_the_worker(self):
        session = self._session(SlowBoard())

        for _ in range(8):
            future = session.dispatch("read-analog 2")
            self.assertIsNotNone(future)
            future.result(timeout=2.0)

        self.assertEqual(session.sink.texts(), ["A2=517\r\n"] * 8)
        self.assertEqual(session.sink.texts("status"), [])

    def test_unsolicited_output_still_flows_between_reads(self):
        board = SlowBoard(delay=0.01)
        session = self._session(board)

        session.dispatch("read-analog 1").result(timeout=2.0)
        board.feed(b"button\r\n")
        deadline = time.monotonic() + 2.0
        while len(session.sink.texts()) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)

        self.assertEqual(session.sink.texts(), ["A1=517\r\n", "button\r\n"])

    def test_unanswered_read_gives_up(self):
        session = self._session(MemoryTransport(port="COM3"), reply_timeout=0.1)

        session.dispatch("read-digital 4").result(timeout=2.0)

        self.assertEqual(session.sink.texts(), [])
        self.assertEqual(len(session.sink.texts("status")), 1)
        self.assertIn("No complete reply", session.sink.texts("status")[0])


class TestSessionSink(unittest.TestCase):
    def test_given_sink_is_used(self):
        sink = OutputSink()
        session = ShellSession(SessionConfig(sync=True), transport=MemoryTransport(), sink=sink)
        self.addCleanup(session.close)

        self.assertIs(session.sink, sink)
        session.dispatch("help")
        self.assertEqual(len(sink.texts("status")), 1)
