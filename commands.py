class Cmd:
    WRITE_DIGITAL = 'write-digital'
    WRITE_ANALOG = 'write-analog'
    READ_DIGITAL = 'read-digital'
    READ_ANALOG = 'read-analog'

    LSDEV = 'lsdev'
    CHDEV = 'chdev'
    EXIT = 'exit'
    HELP = 'help'


# Leading numeric code of each data command on the wire
WIRE_CODES = {
    Cmd.READ_ANALOG: 0,
    Cmd.READ_DIGITAL: 1,
    Cmd.WRITE_ANALOG: 2,
    Cmd.WRITE_DIGITAL: 3,
}


class CmdGroups:
    # Writes that expect the device to answer
    EXPECT_REPLY = frozenset({
        Cmd.READ_DIGITAL, Cmd.READ_ANALOG,
    })

    # Run on the input thread: they prompt, print or end the session
    ADMIN = frozenset({
        Cmd.LSDEV, Cmd.CHDEV, Cmd.EXIT, Cmd.HELP,
    })
