from typing import List

from serialcli.utils.exceptions import NoDeviceFoundError, ShellExit, TransportError


def _port_listing(ports: List[str]) -> str:
    lines = ["Serial Ports found:"]
    for i, port in enumerate(ports, 1):
        lines.append(f"{i}: {port}")
    return "\n".join(lines)


def lsdev(args: List[str], ctx) -> None:
    try:
        ports = ctx.session.list_ports()
    except TransportError as e:
        ctx.sink.error(e.message)
        return
    if not ports:
        ctx.sink.error(NoDeviceFoundError("No serial devices found").message)
        return
    ctx.sink.status(_port_listing(ports))


def chdev(args: List[str], ctx) -> None:
    session = ctx.session
    if args and args[0].strip():
        port = args[0].strip()
    else:
        try:
            ports = session.list_ports()
        except TransportError as e:
            ctx.sink.error(e.message)
            return
        if not ports:
            ctx.sink.error(NoDeviceFoundError("No serial devices found").message)
            return
        port = session.select_port(ports)
        if not port:
            ctx.sink.status("Device unchanged")
            return

    try:
        session.change_device(port)
    except TransportError as e:
        ctx.sink.error(f"Error connecting: {e.message}")
        return
    ctx.sink.status(f"Connected to: {ctx.channel.identity()}")


def exit_shell(args: List[str], ctx) -> None:
    raise ShellExit()


def show_help(args: List[str], ctx) -> None:
    lines = ["Commands:"]
    for command in ctx.table:
        lines.append(f"  {command.name:<14} {command.help}")
    lines.append("Anything else is sent to the device as typed.")
    ctx.sink.status("\n".join(lines))
