from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional


@dataclass(frozen=True)
class Command:
    name: str
    handler: Callable
    inline: bool = False
    help: str = ""

    def exec(self, args: List[str], ctx) -> None:
        self.handler(args, ctx)


class CommandTable:
    """Ordered name -> Command lookup.

    Registering a name twice is allowed; the first entry wins on lookup and
    the later ones are never reached. shadowed() reports them.
    """

    def __init__(self):
        self._commands: List[Command] = []
        self._frozen = False

    def register(self, name: str, handler: Callable, inline: bool = False, help: str = "") -> Command:
        if self._frozen:
            raise RuntimeError(f"Command table is frozen, cannot register '{name}'")
        command = Command(name=name, handler=handler, inline=inline, help=help)
        self._commands.append(command)
        return command

    def resolve(self, name: str) -> Optional[Command]:
        for command in self._commands:
            if command.name == name:
                return command
        return None

    def shadowed(self) -> List[str]:
        seen = set()
        dupes = []
        for command in self._commands:
            if command.name in seen and command.name not in dupes:
                dupes.append(command.name)
            seen.add(command.name)
        return dupes

    def freeze(self) -> "CommandTable":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return [c.name for c in self._commands]

    def __iter__(self) -> Iterator[Command]:
        return iter(list(self._commands))

    def __len__(self):
        return len(self._commands)

    def __contains__(self, name):
        return self.resolve(name) is not None
