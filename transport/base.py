from abc import ABC, abstractmethod


class Transport(ABC):
    """Raw byte transport underneath a DeviceChannel."""

    port: str = ""

    @abstractmethod
    def write(self, data: bytes) -> int:
        pass

    @abstractmethod
    def read(self, size: int = 1) -> bytes:
        pass

    @abstractmethod
    def in_waiting(self) -> int:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass
