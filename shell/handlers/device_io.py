from typing import List

from serialcli.commands import Cmd, CmdGroups, WIRE_CODES


def format_payload(name: str, args: List[str]) -> str:
    """``"<code> <args joined by space>"``, the whole thing as one message."""
    return f"{WIRE_CODES[name]} {' '.join(args).strip()}"


def _await_reply(ctx) -> None:
    if not ctx.synchronizer.wait_for_reply():
        ctx.sink.status(f"No complete reply from {ctx.channel.identity()} within the wait limit")
    text = ctx.synchronizer.drain_one()
    if text:
        ctx.sink.publish(text)


def _coded(name: str):
    def handler(args: List[str], ctx) -> None:
        payload = format_payload(name, args)
        if name not in CmdGroups.EXPECT_REPLY:
            ctx.send(payload)
            return
        # the listener stays off the buffer until this reply is drained
        with ctx.synchronizer.exchange():
            ctx.send(payload)
            _await_reply(ctx)
    handler.__name__ = name.replace('-', '_')
    return handler


write_digital = _coded(Cmd.WRITE_DIGITAL)
write_analog = _coded(Cmd.WRITE_ANALOG)
read_digital = _coded(Cmd.READ_DIGITAL)
read_analog = _coded(Cmd.READ_ANALOG)
