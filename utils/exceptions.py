class SerialCliException(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.__class__.__name__}: {self.message}"


class TransportError(SerialCliException):
    pass


class DecodeError(SerialCliException):
    def __init__(self, message: str, raw: bytes = b""):
        super().__init__(message)
        self.raw = raw


class NoDeviceFoundError(SerialCliException):
    pass


class DispatchRejected(SerialCliException):
    pass


class FatalError(SerialCliException):
    pass


class ShellExit(SerialCliException):
    def __init__(self, message: str = "Exiting...", code: int = 0):
        super().__init__(message)
        self.code = code
